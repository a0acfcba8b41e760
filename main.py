import os

import uvicorn

from drivetest.app import app


if __name__ == "__main__":
    uvicorn.run(
        app,
        host=os.environ.get("DRIVETEST_HOST", "127.0.0.1"),
        port=int(os.environ.get("DRIVETEST_PORT", "8000")),
    )
