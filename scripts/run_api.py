import argparse
import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

import uvicorn


def main() -> None:
    ap = argparse.ArgumentParser(description="Serve the pizza API")
    ap.add_argument("--host", default=os.environ.get("API_HOST", "0.0.0.0"))
    ap.add_argument("--port", type=int, default=int(os.environ.get("PORT", "3000")))
    ap.add_argument("--reload", action="store_true", help="Restart on code changes (development only)")
    args = ap.parse_args()

    uvicorn.run("pizza_service.api.server:app", host=args.host, port=args.port, reload=args.reload)


if __name__ == "__main__":
    main()
