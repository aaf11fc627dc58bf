"""LangSmith observability and tracing."""
import logging
import os
from typing import Optional
from langsmith import Client
from sales_agent.config import Settings, settings

logger = logging.getLogger(__name__)


class Observability:
    """LangSmith observability manager."""

    def __init__(self, config: Optional[Settings] = None):
        """Initialize LangSmith client when tracing is configured."""
        self.config = config or settings
        if self.config.langchain_tracing_v2 and self.config.langchain_api_key:
            self.client = Client(api_key=self.config.langchain_api_key)
            self.enabled = True
        else:
            self.client = None
            self.enabled = False

    def setup_langsmith(self) -> bool:
        """
        Export LangSmith environment variables so @traceable spans are sent.

        Returns:
            True if tracing was switched on
        """
        if not self.config.langchain_tracing_v2:
            logger.info("LangSmith tracing disabled")
            return False

        os.environ["LANGCHAIN_TRACING_V2"] = "true"
        if self.config.langchain_api_key:
            os.environ["LANGCHAIN_API_KEY"] = self.config.langchain_api_key
        else:
            logger.warning("LangSmith tracing enabled without an API key")
        os.environ["LANGCHAIN_PROJECT"] = self.config.langchain_project
        logger.info(f"LangSmith tracing enabled for project {self.config.langchain_project}")
        return True


def setup_observability(config: Optional[Settings] = None) -> Observability:
    """Setup observability for the application."""
    observability = Observability(config)
    observability.setup_langsmith()
    return observability
