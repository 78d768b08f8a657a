import logging
from nicegui import ui

from src.core import config_manager
from src.ui.scan import scan_page

logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)

@ui.page('/')
def index():
    scan_page()

if __name__ in {"__main__", "__mp_main__"}:
    config = config_manager.load_config()
    logger.info(f"Using lookup host {config.get('lookup_host')}")
    ui.run(title="Open Food Facts Scanner", port=int(config.get("port", 8080)), reload=False)
