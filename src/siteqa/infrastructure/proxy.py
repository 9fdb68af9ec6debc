"""
Proxy configuration for region-gated page loads.

Used by the EU pricing check, which must browse the site through an
authenticated proxy located in the EU.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

from siteqa.config import QAConfig
from siteqa.exceptions import ConfigurationError


@dataclass
class ProxyConfig:
    """Configuration for a single HTTP proxy."""
    host: str
    port: int
    username: Optional[str] = None
    password: Optional[str] = None

    @property
    def address(self) -> str:
        return f"{self.host}:{self.port}"

    @property
    def playwright_proxy(self) -> Dict[str, Any]:
        """Get proxy config for Playwright."""
        proxy = {"server": f"http://{self.address}"}
        if self.username and self.password:
            proxy["username"] = self.username
            proxy["password"] = self.password
        return proxy

    @classmethod
    def from_qa_config(cls, config: QAConfig) -> "ProxyConfig":
        """
        Build the proxy from run configuration.

        Raises:
            ConfigurationError: If host or port is missing
        """
        if not config.has_proxy:
            raise ConfigurationError(
                "Proxy host and port are required (SITEQA_PROXY_HOST, SITEQA_PROXY_PORT)"
            )
        return cls(
            host=config.proxy_host,
            port=int(config.proxy_port),
            username=config.proxy_username,
            password=config.proxy_password,
        )
