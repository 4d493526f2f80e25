"""Process wiring: logging, database and the dependency container."""

from esg_registry.bootstrap.container import Container, build_container, load_dotenv_file
from esg_registry.bootstrap.database import create_session_factory, get_database_url
from esg_registry.bootstrap.logging import configure_logging

__all__: list[str] = [
    "Container",
    "build_container",
    "configure_logging",
    "create_session_factory",
    "get_database_url",
    "load_dotenv_file",
]
