"""
Run script for the summarization endpoint.
Starts the Quart app under hypercorn.
"""
import argparse
import asyncio
import logging

from hypercorn.asyncio import serve
from hypercorn.config import Config as HypercornConfig

from server.app import create_app
from services.config import load_config
from services.logging import setup_logging

logger = logging.getLogger(__name__)


def run_server(host: str = '0.0.0.0', port: int = 5000, config_path: str | None = None) -> None:
    """Run the endpoint server."""
    config = load_config(config_path)
    app = create_app(config)

    hypercorn_config = HypercornConfig()
    hypercorn_config.bind = [f"{host}:{port}"]
    hypercorn_config.accesslog = '-'
    hypercorn_config.errorlog = '-'

    logger.info(f"Starting summarization endpoint on http://{host}:{port}")
    asyncio.run(serve(app, hypercorn_config))


def main() -> None:
    parser = argparse.ArgumentParser(description='Summarization endpoint')
    parser.add_argument('--host', default='0.0.0.0',
                        help='Host to bind to (default: 0.0.0.0)')
    parser.add_argument('--port', type=int, default=5000,
                        help='Port to bind to (default: 5000)')
    parser.add_argument('--config', default=None,
                        help='Path to config.yml')

    args = parser.parse_args()

    setup_logging()
    run_server(host=args.host, port=args.port, config_path=args.config)


if __name__ == '__main__':
    main()
