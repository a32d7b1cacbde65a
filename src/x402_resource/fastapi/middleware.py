"""
FastAPI middleware for x402 payment processing
"""

import asyncio
import logging
from functools import wraps
from typing import Any, Awaitable, Callable, Optional

from fastapi import Request, Response
from fastapi.responses import HTMLResponse, JSONResponse

from x402_resource.http import (
    HTTPProcessResult,
    HTTPRequestContext,
    HTTPResponseInstructions,
    PaymentObserver,
    PaymentOption,
    PaymentVerified,
    PaywallConfig,
    PaywallProvider,
    RouteConfig,
    RoutesConfig,
    X402HTTPResourceServer,
)
from x402_resource.http.x402_http_server import PAYMENT_SIGNATURE_HEADER
from x402_resource.mechanisms.server import SCHEME_EXACT
from x402_resource.server import X402ResourceServer

logger = logging.getLogger(__name__)

CallNext = Callable[[Request], Awaitable[Response]]


class FastAPIAdapter:
    """Adapter exposing a FastAPI/Starlette request to the payment layer"""

    def __init__(self, request: Request) -> None:
        self._request = request

    def get_header(self, name: str) -> Optional[str]:
        return self._request.headers.get(name)

    def get_method(self) -> str:
        return self._request.method

    def get_path(self) -> str:
        return self._request.url.path

    def get_url(self) -> str:
        return str(self._request.url)

    def get_accept_header(self) -> str:
        return self._request.headers.get("accept", "")

    def get_user_agent(self) -> str:
        return self._request.headers.get("user-agent", "")

    def get_query_params(self) -> dict[str, str]:
        return dict(self._request.query_params)

    def get_query_param(self, name: str) -> Optional[str]:
        return self._request.query_params.get(name)


def request_context(request: Request) -> HTTPRequestContext:
    adapter = FastAPIAdapter(request)
    return HTTPRequestContext(
        adapter=adapter,
        path=request.url.path,
        method=request.method,
        payment_header=adapter.get_header(PAYMENT_SIGNATURE_HEADER),
    )


def to_response(instructions: HTTPResponseInstructions) -> Response:
    """Turn response instructions into a FastAPI response"""
    if instructions.is_html:
        return HTMLResponse(
            content=instructions.body,
            status_code=instructions.status,
            headers=instructions.headers,
        )

    content_type = instructions.headers.get("Content-Type", "application/json")
    headers = {k: v for k, v in instructions.headers.items() if k != "Content-Type"}
    body = instructions.body
    if body is None or isinstance(body, (str, bytes)):
        return Response(
            content=body,
            status_code=instructions.status,
            headers=headers,
            media_type=content_type,
        )
    return JSONResponse(
        content=body,
        status_code=instructions.status,
        headers=headers,
        media_type=content_type,
    )


def settlement_failed(details: Optional[str]) -> JSONResponse:
    return JSONResponse(
        content={"error": "Settlement failed", "details": details},
        status_code=402,
    )


class _PaymentGate:
    """Lazily initialized HTTP payment server shared by a middleware or decorator"""

    def __init__(
        self,
        http_server: X402HTTPResourceServer,
        paywall_config: Optional[PaywallConfig] = None,
    ) -> None:
        self.http_server = http_server
        self.paywall_config = paywall_config
        self._initialized = False
        self._init_lock = asyncio.Lock()

    async def ensure_initialized(self) -> None:
        if self._initialized:
            return
        async with self._init_lock:
            if not self._initialized:
                logger.info("Initializing x402 payment server")
                await self.http_server.initialize()
                self._initialized = True

    async def process(self, request: Request) -> HTTPProcessResult:
        await self.ensure_initialized()
        return await self.http_server.process_http_request(
            request_context(request), self.paywall_config
        )

    async def settle(self, result: PaymentVerified, response: Response) -> Response:
        """Settle after the handler ran; handler errors are never settled"""
        if response.status_code >= 400:
            return response

        settle_result = await self.http_server.process_settlement(
            result.payment_payload, result.payment_requirements
        )
        if not settle_result.success:
            return settlement_failed(settle_result.error_reason)

        response.headers.update(settle_result.headers)
        return response


def payment_middleware(
    routes: RoutesConfig,
    server: X402ResourceServer,
    paywall_config: Optional[PaywallConfig] = None,
    paywall_provider: Optional[PaywallProvider] = None,
    observer: Optional[PaymentObserver] = None,
) -> Callable[[Request, CallNext], Awaitable[Response]]:
    """
    Create an HTTP middleware protecting ``routes``.

    The server is initialized on the first request to a protected route.

    Usage:
        app = FastAPI()
        app.middleware("http")(payment_middleware({
            "GET /weather": {
                "accepts": {
                    "scheme": "exact",
                    "payTo": "0x...",
                    "price": "$0.01",
                    "network": "eip155:84532",
                },
            },
        }, server))

    Args:
        routes: Route configuration for protected endpoints
        server: Configured X402ResourceServer
        paywall_config: Paywall settings for browser clients
        paywall_provider: Custom paywall page renderer
        observer: Receives payment events

    Returns:
        Middleware function for ``app.middleware("http")``
    """
    http_server = X402HTTPResourceServer(server, routes, observer)
    if paywall_provider is not None:
        http_server.register_paywall_provider(paywall_provider)
    gate = _PaymentGate(http_server, paywall_config)

    async def middleware(request: Request, call_next: CallNext) -> Response:
        if not http_server.requires_payment(request_context(request)):
            return await call_next(request)

        result = await gate.process(request)

        if isinstance(result, PaymentVerified):
            request.state.payment_payload = result.payment_payload
            request.state.payment_requirements = result.payment_requirements

            response = await call_next(request)
            if response.status_code >= 400:
                return response

            # Buffer the body so a failed settlement can still replace the response
            body = b""
            async for chunk in response.body_iterator:
                body += chunk if isinstance(chunk, bytes) else chunk.encode()

            buffered = Response(content=body, status_code=response.status_code)
            # Raw headers keep repeated fields such as Set-Cookie
            buffered.raw_headers = list(response.raw_headers)
            return await gate.settle(result, buffered)

        if result.type == "payment-error":
            return to_response(result.response)

        return await call_next(request)

    return middleware


class X402Middleware:
    """
    FastAPI decorator-style payment protection.

    Usage:
        app = FastAPI()
        server = X402ResourceServer(FacilitatorClient())
        server.register("eip155:*", ExactServerMechanism())
        middleware = X402Middleware(server)

        @app.get("/protected")
        @middleware.protect(price="$0.01", network="eip155:8453", pay_to="0x...")
        async def protected_endpoint(request: Request):
            return {"data": "secret"}
    """

    def __init__(
        self,
        server: X402ResourceServer,
        paywall_config: Optional[PaywallConfig] = None,
        paywall_provider: Optional[PaywallProvider] = None,
        observer: Optional[PaymentObserver] = None,
    ) -> None:
        self._server = server
        self._paywall_config = paywall_config
        self._paywall_provider = paywall_provider
        self._observer = observer

    def protect(
        self,
        price: Any = None,
        network: str | None = None,
        pay_to: Any = None,
        scheme: str = SCHEME_EXACT,
        max_timeout_seconds: int | None = None,
        prices: list[Any] | None = None,
        accepts: PaymentOption | list[PaymentOption] | None = None,
        description: str | None = None,
        mime_type: str | None = None,
        custom_paywall_html: str | None = None,
        extensions: dict[str, Any] | None = None,
    ) -> Callable:
        """
        Decorator to protect endpoints with payment requirements.

        Single price:
            @middleware.protect(price="$0.01", network="eip155:8453", pay_to="0x...")

        Several prices on one network:
            @middleware.protect(
                network="tron:nile",
                pay_to="T...",
                prices=["1 USDT", "2 USDT"],
            )

        Arbitrary options:
            @middleware.protect(accepts=[PaymentOption(...), PaymentOption(...)])

        The decorated endpoint must declare a ``request: Request`` parameter.
        FastAPI passes endpoint arguments by keyword, so the parameter has to
        be named ``request``; other parameters are passed through unchanged.

        Args:
            price: Money price or AssetAmount, for single-price mode
            network: Network identifier (shared by all prices)
            pay_to: Recipient address or a callable of the request context
            scheme: Payment scheme
            max_timeout_seconds: Payment validity window
            prices: Several prices for the same network and recipient
            accepts: Explicit payment options; overrides the other price arguments
            description: Resource description
            mime_type: Resource MIME type
            custom_paywall_html: Paywall page for browsers
            extensions: Extension declarations

        Returns:
            Decorated function
        """
        if accepts is None:
            price_list = prices if prices is not None else [price]
            if not network or not pay_to or any(p is None for p in price_list):
                raise ValueError("price (or prices), network and pay_to are required")
            accepts = [
                PaymentOption(
                    scheme=scheme,
                    pay_to=pay_to,
                    price=p,
                    network=network,
                    max_timeout_seconds=max_timeout_seconds,
                )
                for p in price_list
            ]

        route_config = RouteConfig(
            accepts=accepts,
            description=description,
            mime_type=mime_type,
            custom_paywall_html=custom_paywall_html,
            extensions=extensions,
        )
        http_server = X402HTTPResourceServer(self._server, route_config, self._observer)
        if self._paywall_provider is not None:
            http_server.register_paywall_provider(self._paywall_provider)
        gate = _PaymentGate(http_server, self._paywall_config)

        def decorator(func: Callable) -> Callable:
            @wraps(func)
            async def wrapper(request: Request, *args: Any, **kwargs: Any) -> Response:
                result = await gate.process(request)

                if isinstance(result, PaymentVerified):
                    request.state.payment_payload = result.payment_payload
                    request.state.payment_requirements = result.payment_requirements

                    response = await func(request, *args, **kwargs)
                    if not isinstance(response, Response):
                        response = JSONResponse(content=response)
                    return await gate.settle(result, response)

                if result.type == "payment-error":
                    return to_response(result.response)

                return await func(request, *args, **kwargs)

            return wrapper

        return decorator


def x402_protected(
    server: X402ResourceServer,
    pay_to: Any,
    price: Any = None,
    network: str | None = None,
    prices: list[Any] | None = None,
    **kwargs: Any,
) -> Callable:
    """
    Convenience decorator to protect endpoints.

        @app.get("/weather")
        @x402_protected(server, price="$0.001", network="eip155:84532", pay_to="0x...")
        async def weather(request: Request):
            ...
    """
    middleware = X402Middleware(server)
    return middleware.protect(price=price, network=network, pay_to=pay_to, prices=prices, **kwargs)
