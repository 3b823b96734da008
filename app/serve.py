"""
Run the API server. From project root:
  python -m app.serve
  python -m app.serve --reload   # development
"""
import argparse
import sys

import uvicorn

from app.core.config import get_settings


def main() -> int:
    parser = argparse.ArgumentParser(description="Run the Tech-E API server.")
    parser.add_argument("--reload", action="store_true", help="Enable auto-reload")
    parser.add_argument("--host", type=str, help="Host to bind to (default: HOST setting)")
    parser.add_argument("--port", type=int, help="Port to bind to (default: PORT setting)")
    args = parser.parse_args()

    settings = get_settings()
    uvicorn.run(
        "app.main:app",
        host=args.host or settings.HOST,
        port=args.port or settings.PORT,
        reload=args.reload,
        log_level="debug" if settings.DEBUG else "info",
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
