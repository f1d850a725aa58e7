"""WSGI entry point for production deployment."""
import sys
import os
import logging
from pathlib import Path

# Ensure project root is on path
sys.path.insert(0, str(Path(__file__).parent))

from config import load_config
from utils.logger import setup_logging
from main import build_components
from web.app import create_app

logger = logging.getLogger("farmmonitor.wsgi")

config = load_config(os.environ.get("FARM_MONITOR_CONFIG"))
setup_logging(config["logging"].get("level", "INFO"), config["logging"].get("file"))

components = build_components(config)
app = create_app(config, components)

logger.info(
    f"Loaded {len(components['thresholds'].get_all())} thresholds, "
    f"{len(components['rules'].get_all_rules())} rules"
)
