import logging

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str = "INFO") -> None:
    # force=True because Streamlit reruns the script and may have set handlers already
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT, force=True)
    # httpx logs every backend request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
