# greenpulse/__main__.py
import os

import uvicorn


def main():
    uvicorn.run(
        "greenpulse.main:app",
        host=os.environ.get("GREENPULSE_HOST", "127.0.0.1"),
        port=int(os.environ.get("GREENPULSE_PORT", "8000")),
    )


if __name__ == "__main__":
    main()
