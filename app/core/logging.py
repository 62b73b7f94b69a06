import logging
from contextvars import ContextVar
from .config import Settings, settings as default_settings

request_id_ctx: ContextVar[str] = ContextVar("request_id", default="-")

_old_factory = logging.getLogRecordFactory()

def _record_factory(*args, **kwargs):
    record = _old_factory(*args, **kwargs)
    record.request_id = request_id_ctx.get()
    return record

def setup_logging(settings: Settings | None = None):
    settings = settings or default_settings
    if settings.LOG_LEVEL:
        level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)
    else:
        level = logging.DEBUG if settings.ENV == "local" else logging.INFO
    # attach request_id to every record, including ones emitted outside a request
    logging.setLogRecordFactory(_record_factory)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s [%(request_id)s] %(message)s",
    )
    # httpx logs every request at INFO, one line per relayed segment
    logging.getLogger("httpx").setLevel(logging.WARNING)
