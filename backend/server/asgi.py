"""
ASGI entry point.

Used by uvicorn:

    uvicorn server.asgi:app --app-dir backend

or directly, from backend/:

    python -m server.asgi
"""

from dotenv import load_dotenv

load_dotenv()

from server.app import create_app  # pylint: disable=wrong-import-position

app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "server.asgi:app",
        host="0.0.0.0",
        port=8000,
        log_level=app.state.config.log_level.lower(),
    )
