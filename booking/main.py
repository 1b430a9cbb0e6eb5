import uvicorn

from booking.config import settings


def main():
    """Run the FastAPI application with uvicorn server."""
    uvicorn.run(
        "booking.app:app",
        host=settings.host,
        port=settings.port,
        reload=not settings.is_production,
    )


if __name__ == "__main__":
    main()
