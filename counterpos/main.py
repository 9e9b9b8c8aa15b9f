# counterpos/main.py
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse

from .config import CONFIG
from .errors import InvalidConfiguration, InvalidLineItem
from .routers import views_kitchen, views_orders

logging.basicConfig(
    level=getattr(logging, CONFIG.log_level, logging.INFO),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
log = logging.getLogger("counterpos")

# ✅ crea l'app PRIMA di includere i router
app = FastAPI(title="Counter POS - pricing & kitchen timing")


@app.exception_handler(InvalidLineItem)
async def invalid_line_item_handler(request: Request, exc: InvalidLineItem):
    log.info("rejected order lines on %s: %s", request.url.path, exc)
    return JSONResponse(
        {"ok": False, "error": "cannot calculate order total", "detail": str(exc)},
        status_code=422,
    )


@app.exception_handler(InvalidConfiguration)
async def invalid_configuration_handler(request: Request, exc: InvalidConfiguration):
    log.warning("invalid settings on %s: %s", request.url.path, exc)
    return JSONResponse({"ok": False, "error": "invalid settings", "detail": str(exc)}, status_code=422)


@app.exception_handler(ValueError)
async def bad_record_handler(request: Request, exc: ValueError):
    # record ordine malformato (date, importi...)
    log.error("bad payload on %s: %s", request.url.path, exc)
    return JSONResponse({"ok": False, "error": "invalid order record", "detail": str(exc)[:300]}, status_code=400)


@app.get("/health", response_class=PlainTextResponse)
def health():
    return "OK"


# include di tutti i router DOPO la creazione dell'app
app.include_router(views_orders.router)
app.include_router(views_kitchen.router)
