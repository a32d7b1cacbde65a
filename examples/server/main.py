import logging
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from x402_resource.config import NetworkConfig, ResourceServerSettings
from x402_resource.facilitator import FacilitatorClient
from x402_resource.fastapi import payment_middleware, x402_protected
from x402_resource.http import PaywallConfig
from x402_resource.logging_config import setup_logging
from x402_resource.mechanisms.server import ExactServerMechanism
from x402_resource.server import X402ResourceServer
from x402_resource.tokens import TokenRegistry

load_dotenv(Path(__file__).parent.parent.parent / ".env")

setup_logging(level=logging.INFO)
logging.getLogger("x402_resource").setLevel(logging.DEBUG)

logger = logging.getLogger(__name__)

settings = ResourceServerSettings.from_env()
PAY_TO_ADDRESS = settings.pay_to or "0x209693Bc6afc0C5328bA36FaF03C514EF312287C"
NETWORK = settings.network
SERVER_HOST = "0.0.0.0"
SERVER_PORT = 8000

app = FastAPI(title="x402 Resource Server", description="Pay-per-request API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["PAYMENT-REQUIRED", "PAYMENT-RESPONSE"],
)

facilitator = FacilitatorClient(
    base_url=settings.facilitator_url,
    timeout=settings.facilitator_timeout,
)
server = X402ResourceServer(facilitator)
server.register("eip155:*", ExactServerMechanism())
server.register("tron:*", ExactServerMechanism())


def price_for_city(context):
    """Forecasts for more than one city cost more"""
    cities = context.adapter.get_query_param("cities") or ""
    return "$0.005" if "," in cities else "$0.001"


routes = {
    "GET /weather": {
        "accepts": {
            "scheme": "exact",
            "payTo": PAY_TO_ADDRESS,
            "price": price_for_city,
            "network": NETWORK,
        },
        "description": "Current weather",
        "mimeType": "application/json",
    },
}

app.middleware("http")(
    payment_middleware(
        routes,
        server,
        paywall_config=PaywallConfig(
            app_name="Weather API", testnet=NetworkConfig.is_testnet(NETWORK)
        ),
    )
)

logger.info(f"Network: {NETWORK}")
logger.info(f"Pay To: {PAY_TO_ADDRESS}")
logger.info(f"Facilitator URL: {settings.facilitator_url}")
for symbol, info in TokenRegistry.get_network_tokens(NETWORK).items():
    logger.info(f"  {symbol}: {info.address} (decimals={info.decimals})")


@app.get("/")
async def root():
    """Service info"""
    return {
        "service": "x402 Resource Server",
        "status": "running",
        "pay_to": PAY_TO_ADDRESS,
        "facilitator": settings.facilitator_url,
    }


@app.get("/weather")
async def weather(request: Request):
    cities = request.query_params.get("cities", "Paris")
    return {
        "report": [
            {"city": city, "weather": "sunny", "temperature": 21} for city in cities.split(",")
        ],
        "paid": request.state.payment_requirements.amount,
    }


@app.get("/premium")
@x402_protected(
    server=server,
    price="$0.01",
    network=NETWORK,
    pay_to=PAY_TO_ADDRESS,
    description="Premium forecast",
)
async def premium(request: Request):
    return {"forecast": "sunny all week", "confidence": 0.93}


if __name__ == "__main__":
    import uvicorn

    logger.info(f"Starting x402 resource server on {SERVER_HOST}:{SERVER_PORT}")
    uvicorn.run(
        app,
        host=SERVER_HOST,
        port=SERVER_PORT,
        log_level="info",
        access_log=True,
    )
