"""FastAPI proxy in front of Cohere text generation and Google Cloud Storage."""

__version__ = "1.0.0"

from .main import app, create_app  # noqa: E402

__all__ = ["app", "create_app", "__version__"]
