import argparse
import uvicorn
from penpal.core.config import settings

def main():
    parser = argparse.ArgumentParser(description="Serve the Penpal API with uvicorn")
    parser.add_argument("--host", default="0.0.0.0", help="bind address")
    parser.add_argument("--port", type=int, default=8000, help="bind port")
    parser.add_argument("--reload", action="store_true", help="restart on code changes (always on when DEBUG)")
    parser.add_argument("--workers", type=int, default=1, help="worker processes, ignored with reload")
    parser.add_argument(
        "--log-level",
        default="debug" if settings.DEBUG else "info",
        choices=["critical", "error", "warning", "info", "debug"],
    )
    args = parser.parse_args()

    # uvicorn cannot combine reload with several workers
    use_reload = args.reload or settings.DEBUG
    uvicorn.run(
        "penpal.main:app",
        host=args.host,
        port=args.port,
        reload=use_reload,
        workers=None if use_reload else args.workers,
        log_level=args.log_level,
    )

if __name__ == "__main__":
    main()
