"""Catalogue bounded context — the book catalog and the events it publishes."""

from protean.domain import Domain

from shared.logging import configure_logging, get_logger

# Configure logging for the application
configure_logging(level="INFO", log_dir="logs", log_file_prefix="bookstream")

# Get logger for this module
logger = get_logger(__name__)

# Domain Composition Root
catalogue = Domain(name="catalogue")
