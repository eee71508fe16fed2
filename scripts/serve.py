import argparse
import os

import uvicorn
from dotenv import load_dotenv

from webnest.core.config import SERVICE_KINDS, Settings


def main() -> None:
    load_dotenv()

    parser = argparse.ArgumentParser(description="Run one WebNest backend.")
    parser.add_argument(
        "service",
        nargs="?",
        choices=sorted(SERVICE_KINDS),
        default=os.getenv("WEBNEST_SERVICE", "client"),
    )
    parser.add_argument("--host", default=os.getenv("HOST", "0.0.0.0"))
    parser.add_argument("--reload", action="store_true")
    args = parser.parse_args()

    # The app module reads the service from the environment at import time.
    os.environ["WEBNEST_SERVICE"] = args.service
    settings = Settings(args.service)

    uvicorn.run("webnest.main:app", host=args.host, port=settings.port, reload=args.reload)


if __name__ == "__main__":
    main()
