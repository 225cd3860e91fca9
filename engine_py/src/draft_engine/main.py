"""FastAPI main application for the draft room backend"""

import logging

from .config import ServerConfig
from .ws.server import create_app

config = ServerConfig.from_env()

# Configure logging
logging.basicConfig(level=getattr(logging, config.log_level.upper(), logging.INFO))
logger = logging.getLogger(__name__)

app = create_app(config)

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=config.host, port=config.port)
