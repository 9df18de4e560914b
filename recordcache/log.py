import logging


def setup_logging(debug_mode: bool = False) -> None:
    """Root logging for applications embedding the cache. Cache traffic logs at DEBUG."""
    level = logging.DEBUG if debug_mode else logging.INFO
    logging.basicConfig(
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s", level=level
    )
    if not debug_mode:
        logging.getLogger("httpx").setLevel(logging.WARNING)
        logging.getLogger("recordcache").setLevel(logging.INFO)
