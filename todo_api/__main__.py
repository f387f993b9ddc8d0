import logging
import os

import uvicorn
from dotenv import load_dotenv

from .config import port_from_env


def main():
    load_dotenv()
    logging.basicConfig(
        level=os.environ.get("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    # Startup failures (bad secrets, unreachable DB) surface from the lifespan
    # and uvicorn exits non-zero
    uvicorn.run("todo_api.main:app", host="0.0.0.0", port=int(port_from_env()))


if __name__ == "__main__":
    main()
