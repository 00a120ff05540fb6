"""Run the API with uvicorn: ``python -m recytrack`` or ``recytrack``."""
import uvicorn

from recytrack.config import settings


def main():
    uvicorn.run(
        "recytrack.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    main()
