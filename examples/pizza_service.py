"""Example pizza service wired to pizzascope telemetry.

Run with:
    uvicorn examples.pizza_service:app --reload

Environment:
    METRICS_URL / METRICS_API_KEY  - enable OTLP metric export
    LOGGING_URL / LOGGING_USER_ID / LOGGING_API_KEY - enable Loki shipping

Instrumentation:
    Every request is counted and logged by the middleware. The auth and
    order handlers call the telemetry hooks directly for active users,
    order outcomes, database queries and factory calls.
"""

import logging
import time

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel

from pizzascope import Telemetry
from pizzascope.adapters.frameworks.fastapi import install_telemetry, telemetry_lifespan
from pizzascope.adapters.logging import QueueLogHandler
from pizzascope.core.redaction import REDACTED

MENU = [
    {"id": 1, "title": "Veggie", "price_cents": 380},
    {"id": 2, "title": "Pepperoni", "price_cents": 420},
]

telemetry = Telemetry.from_settings()
logging.getLogger().addHandler(
    QueueLogHandler(telemetry.log_queue, level=logging.WARNING)
)

app = FastAPI(title="Pizza Service", lifespan=telemetry_lifespan(telemetry))
install_telemetry(app, telemetry, exclude_paths=["/health"])


class Credentials(BaseModel):
    email: str
    password: str


class OrderItem(BaseModel):
    menu_id: int


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/api/order/menu")
async def get_menu() -> list[dict[str, object]]:
    with telemetry.db_query("SELECT * FROM menu"):
        return MENU


@app.put("/api/auth")
async def login(credentials: Credentials) -> dict[str, str]:
    with telemetry.db_query(
        "SELECT id FROM user WHERE email=? AND password=?",
        [credentials.email, REDACTED],
    ):
        authorized = credentials.password == "diner"
    if not authorized:
        raise HTTPException(status_code=401, detail="unknown user")
    telemetry.record_active_user(credentials.email)
    return {"token": "Bearer example-token"}


@app.post("/api/order")
async def create_order(item: OrderItem) -> dict[str, object]:
    start = time.perf_counter()
    pizza = next((p for p in MENU if p["id"] == item.menu_id), None)
    latency_ms = (time.perf_counter() - start) * 1000
    telemetry.log_factory_request(
        url="https://pizza-factory.example/api/order",
        req_body={"menu_id": item.menu_id},
        status=200 if pizza else 404,
        resp_body=pizza,
        latency_ms=latency_ms,
    )
    if pizza is None:
        telemetry.record_order_outcome(False, latency_ms, 0)
        raise HTTPException(status_code=404, detail="unknown pizza")
    telemetry.record_order_outcome(True, latency_ms, int(pizza["price_cents"]))
    return {"order": pizza}


@app.get("/api/order/{order_id}")
async def get_order(order_id: int) -> dict[str, int]:
    if order_id < 0:
        raise ValueError("order id must be positive")
    return {"id": order_id}
