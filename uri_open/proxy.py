"""
Proxy selection policy for uri_open.

The resolver turns the ``proxy`` / ``proxy_http_basic_authentication``
options into a per-hop decision. Environment proxies are looked up through
an injectable callable so the policy can be tested without touching
``os.environ``.
"""

from __future__ import annotations

import base64
import logging
from dataclasses import dataclass
from typing import Callable, Dict, Mapping, Optional
from urllib.request import getproxies_environment, proxy_bypass_environment

import aiohttp

from .exceptions import ConfigurationError, InvalidLocatorError
from .models.locator import Locator
from .models.options import FetchOptions

logger = logging.getLogger(__name__)

ProxyLookup = Callable[[Locator], Optional[Locator]]


@dataclass(frozen=True)
class ProxySpec:
    """A proxy endpoint and the credentials to present to it."""

    locator: Locator
    user: Optional[str] = None
    password: Optional[str] = None

    @property
    def url(self) -> str:
        """Proxy URL without credentials."""
        return str(self.locator.without_userinfo())

    @property
    def basic_auth(self) -> Optional[aiohttp.BasicAuth]:
        if self.user is None or self.password is None:
            return None
        return aiohttp.BasicAuth(self.user, self.password)

    def authorization_header(self) -> Optional[str]:
        """Value for a ``Proxy-Authorization`` header, if credentials apply."""
        if self.user is None or self.password is None:
            return None
        token = base64.b64encode(f"{self.user}:{self.password}".encode("utf-8"))
        return f"Basic {token.decode('ascii')}"


class EnvironmentProxyLookup:
    """
    Per-scheme proxy lookup from ``<scheme>_proxy`` environment variables.

    The environment is read once, at construction. ``no_proxy`` is honoured.
    """

    def __init__(self, environ_proxies: Optional[Mapping[str, str]] = None) -> None:
        proxies = getproxies_environment() if environ_proxies is None else environ_proxies
        self._proxies: Dict[str, str] = dict(proxies)

    def __call__(self, target: Locator) -> Optional[Locator]:
        proxy = self._proxies.get(target.scheme)
        if not proxy:
            return None
        host = target.hostname or ""
        if host and proxy_bypass_environment(host, self._proxies):
            return None
        try:
            return Locator.parse(proxy)
        except InvalidLocatorError:
            logger.warning("Ignoring unparsable %s_proxy value", target.scheme)
            return None


def _no_proxy(target: Locator) -> Optional[Locator]:
    return None


class ProxyResolver:
    """
    Decides which proxy, if any, applies to a target locator.

    Resolution order: proxy with credentials, explicit proxy, environment
    lookup, none.
    """

    def __init__(
        self,
        find_proxy: ProxyLookup,
        user: Optional[str] = None,
        password: Optional[str] = None,
    ) -> None:
        self._find_proxy = find_proxy
        self._user = user
        self._password = password

    @classmethod
    def from_options(
        cls, options: FetchOptions, lookup: Optional[ProxyLookup] = None
    ) -> "ProxyResolver":
        """
        Build the resolver for one logical fetch.

        Args:
            options: Validated fetch options
            lookup: Environment-style lookup used when ``proxy`` is True;
                defaults to EnvironmentProxyLookup

        Raises:
            ConfigurationError: On conflicting or malformed proxy options
        """
        with_auth = options.is_given("proxy_http_basic_authentication")
        if with_auth and options.is_given("proxy"):
            raise ConfigurationError("multiple proxy options specified", option="proxy")

        user = password = None
        if with_auth:
            value = options.proxy_http_basic_authentication
            if value is None:
                opt_proxy = None
            else:
                opt_proxy, user, password = value
                if opt_proxy is True:
                    raise ConfigurationError(
                        f"Invalid authenticated proxy option: {value!r}",
                        option="proxy_http_basic_authentication",
                    )
                if not isinstance(user, str) or not isinstance(password, str):
                    raise ConfigurationError(
                        "proxy user and password must be strings",
                        option="proxy_http_basic_authentication",
                    )
        elif options.is_given("proxy"):
            opt_proxy = options.proxy
        else:
            opt_proxy = True

        if opt_proxy is True:
            return cls(lookup or EnvironmentProxyLookup())
        if opt_proxy is None or opt_proxy is False:
            return cls(_no_proxy)
        if isinstance(opt_proxy, str):
            opt_proxy = Locator.parse(opt_proxy)
        if isinstance(opt_proxy, Locator):
            fixed = opt_proxy
            return cls(lambda target: fixed, user, password)
        raise ConfigurationError(f"Invalid proxy option: {opt_proxy!r}", option="proxy")

    def resolve(self, target: Locator) -> Optional[ProxySpec]:
        """
        Proxy for one hop.

        Raises:
            ConfigurationError: If the proxy is not an ``http`` locator
        """
        proxy = self._find_proxy(target)
        if proxy is None:
            return None
        if proxy.scheme != "http":
            raise ConfigurationError(f"Non-HTTP proxy URI: {proxy}", url=str(target), option="proxy")

        user, password = self._user, self._password
        if not (user and password) and proxy.userinfo:
            user, password = proxy.user, proxy.password
        return ProxySpec(proxy, user, password)
