# app.py
from asyncio import Lock
from typing import Any, Dict

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from configurations.config import DATABASE_URL, DEBUG, PORT, RECORD_STORE
from core.errors import DatabaseError, ErrorCode
from core.log import get_logger
from core.operation import OperationKind
from services.intent_dispatcher import IntentDispatcher
from services.memory_store import InMemoryTransactionStore
from services.period_resolver import available_periods
from services.prisma_store import PrismaTransactionStore

logger = get_logger("finance_bridge_api")

# -----------------------------
# FastAPI App
# -----------------------------
app = FastAPI(title="Finance Bridge API", version="1.0")

# -----------------------------
# Store + Dispatcher (Lifecycle managed)
# -----------------------------
db = None
dispatcher: IntentDispatcher | None = None

STORE_CONNECTED: bool = False
STORE_ERROR: str | None = None

# -----------------------------
# Metrics
# -----------------------------
metrics_lock = Lock()
request_counters = {
    **{kind.value: 0 for kind in OperationKind},
    "total": 0,
    "errors": 0,
}

# -----------------------------
# Startup / Shutdown Events
# -----------------------------
@app.on_event("startup")
async def startup():
    global db, dispatcher, STORE_CONNECTED, STORE_ERROR

    if RECORD_STORE == "memory":
        dispatcher = IntentDispatcher(InMemoryTransactionStore())
        STORE_CONNECTED = True
        logger.info("In-memory record store ready")
        return

    if not DATABASE_URL:
        logger.warning("DATABASE_URL not set; intents disabled.")
        STORE_CONNECTED = False
        STORE_ERROR = "DATABASE_URL not set"
        return

    try:
        from prisma import Prisma

        db = Prisma()
        await db.connect()
        STORE_CONNECTED = True
        STORE_ERROR = None
        logger.info("Prisma DB connected")

        # Dispatcher is created ONLY after DB is ready
        dispatcher = IntentDispatcher(PrismaTransactionStore(db))

    except Exception as e:
        STORE_CONNECTED = False
        STORE_ERROR = str(e)
        logger.exception("Failed to connect Prisma DB")
        if DEBUG:
            raise


@app.on_event("shutdown")
async def shutdown():
    global STORE_CONNECTED
    if db is not None and STORE_CONNECTED:
        await db.disconnect()
        STORE_CONNECTED = False
        logger.info("Prisma DB disconnected")

# -----------------------------
# API Endpoints
# -----------------------------
@app.get("/")
async def root():
    return {"message": "Finance Bridge API is running."}


@app.get("/health")
async def health() -> Dict[str, Any]:
    if dispatcher is None:
        info: Dict[str, Any] = {"status": "degraded", "store_connected": False, "operations": OperationKind.values()}
        if STORE_ERROR:
            info["store_error"] = STORE_ERROR
        return info
    return await dispatcher.health_check()


@app.get("/operations")
async def operations() -> Dict[str, Any]:
    if dispatcher is None:
        return {"operations": [{"name": name, "description": ""} for name in OperationKind.values()]}
    return {"operations": dispatcher.available_operations()}


@app.get("/periods")
async def periods() -> Dict[str, Any]:
    return {"periods": available_periods()}


@app.get("/metrics")
async def metrics() -> Dict[str, Any]:
    async with metrics_lock:
        return request_counters.copy()


@app.post("/intent")
async def process_intent(request: Request):
    async with metrics_lock:
        request_counters["total"] += 1

    if dispatcher is None:
        response = DatabaseError("Record store unavailable", "connect", STORE_ERROR).to_response()
    else:
        try:
            payload = await request.json()
        except ValueError:
            # Malformed JSON is reported by the dispatcher as an invalid envelope
            payload = None
        response = await dispatcher.process(payload)

    async with metrics_lock:
        if response["success"]:
            operation = response["metadata"]["operation"]
            request_counters[operation] = request_counters.get(operation, 0) + 1
        else:
            request_counters["errors"] += 1

    status_code = 200 if response["success"] else ErrorCode(response["error"]["code"]).http_status
    return JSONResponse(status_code=status_code, content=response)


# -----------------------------
# Entrypoint
# -----------------------------
if __name__ == "__main__":
    uvicorn.run("API_LAYER.app:app", host="0.0.0.0", port=PORT, workers=1)
