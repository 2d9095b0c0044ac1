"""
Process entry point: ``uvicorn main:app`` or ``python main.py``.
"""

from chat_runtime.logging_config import setup_logging
from chat_runtime.routes import create_app
from chat_runtime.settings import settings

setup_logging()

app = create_app()


def run() -> None:
    import uvicorn

    # log_config=None keeps the handlers installed by setup_logging().
    uvicorn.run(
        "main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.reload,
        log_config=None,
    )


if __name__ == "__main__":
    run()
