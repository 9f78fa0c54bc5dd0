import argparse
import logging

import uvicorn

from app.core.config import settings

logger = logging.getLogger("app")

def main():
    parser = argparse.ArgumentParser(description="Run the Kanban Board API server")
    parser.add_argument(
        "--host",
        default="0.0.0.0",
        help="Host to run the server on (default: 0.0.0.0)"
    )
    parser.add_argument(
        "--port",
        type=int,
        default=8000,
        help="Port to run the server on (default: 8000)"
    )
    parser.add_argument(
        "--reload",
        action="store_true",
        help="Enable auto-reload on code changes (default: based on DEBUG setting)"
    )
    parser.add_argument(
        "--migrate",
        action="store_true",
        help="Apply Alembic migrations before starting"
    )

    args = parser.parse_args()
    logging.basicConfig(level=logging.DEBUG if settings.DEBUG else logging.INFO)

    if args.migrate:
        from app.db.init_db import init_db
        init_db()

    use_reload = args.reload or settings.DEBUG
    logger.info(
        f"Starting {settings.PROJECT_NAME} in {settings.ENVIRONMENT} mode on "
        f"http://{args.host}:{args.port} (reload {'on' if use_reload else 'off'})"
    )

    uvicorn.run(
        "app.main:app",
        host=args.host,
        port=args.port,
        reload=use_reload
    )

if __name__ == "__main__":
    main()
