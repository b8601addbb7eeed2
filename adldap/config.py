import configparser
import os.path
from urllib.parse import urlsplit

from zope.interface import implementer

from adldap import interfaces
from adldap.distinguishedname import DistinguishedName


class MissingURLError(Exception):
    """Configuration must specify the URL of the directory server"""

    def __str__(self):
        return self.__doc__


class InvalidURLError(Exception):
    """Directory server URL must use the ldap or ldaps scheme"""

    def __init__(self, url):
        Exception.__init__(self)
        self.url = url

    def __str__(self):
        return '%s: %r' % (self.__doc__, self.url)


DEFAULT_PORTS = {
    'ldap': 389,
    'ldaps': 636,
}

# Search base values that ask for detection through the root DSE.
UNSET_SEARCH_BASE = ('', 'UNSET')


@implementer(interfaces.IADLDAPConfig)
class ADLDAPConfig:
    """Everything needed to open a session with the directory."""

    url = None
    bindAccount = None
    bindPassword = None
    searchBase = None
    debug = False

    def __init__(self,
                 url=None,
                 bindAccount=None,
                 bindPassword=None,
                 searchBase=None,
                 debug=False):
        self.url = url
        self.bindAccount = bindAccount
        self.bindPassword = bindPassword
        if searchBase is not None:
            if isinstance(searchBase, str) and searchBase.strip() in UNSET_SEARCH_BASE:
                searchBase = None
            else:
                searchBase = DistinguishedName(searchBase)
        self.searchBase = searchBase
        self.debug = debug

    def getURL(self):
        if not self.url:
            raise MissingURLError
        return self.url

    def getEndpointString(self):
        """
        Get the Twisted client endpoint description for the server URL.

        C{ldap://dc1.example.com} becomes C{tcp:host=dc1.example.com:port=389}
        and C{ldaps://dc1.example.com:3269} becomes
        C{tls:host=dc1.example.com:port=3269}.
        """
        url = self.getURL()
        parts = urlsplit(url)
        scheme = parts.scheme.lower()
        if scheme not in DEFAULT_PORTS or not parts.hostname:
            raise InvalidURLError(url)
        try:
            port = parts.port
        except ValueError:
            raise InvalidURLError(url)
        if port is None:
            port = DEFAULT_PORTS[scheme]
        if scheme == 'ldaps':
            kind = 'tls'
        else:
            kind = 'tcp'
        return '%s:host=%s:port=%d' % (kind, parts.hostname, port)

    def getSearchBase(self):
        """The configured search base, or None for auto-detection."""
        return self.searchBase

    def copy(self, **kw):
        for name in ('url', 'bindAccount', 'bindPassword', 'searchBase', 'debug'):
            if name not in kw:
                kw[name] = getattr(self, name)
        r = self.__class__(**kw)
        return r

    def __repr__(self):
        return (self.__class__.__name__
                + '(url=%r, bindAccount=%r, searchBase=%r, debug=%r)' % (
                    self.url,
                    self.bindAccount,
                    self.searchBase and self.searchBase.getText(),
                    self.debug))


SECTION = 'adldap'

DEFAULTS = {
    SECTION: {
        'search-base': 'UNSET',
        'debug': 'no',
    },
}

CONFIG_FILES = [
    '/etc/adldap/global.cfg',
    os.path.expanduser('~/.adldap/global.cfg'),
]

ENVIRONMENT = {
    'url': 'ADLDAP_URL',
    'bind-account': 'ADLDAP_BIND_ACCOUNT',
    'bind-password': 'ADLDAP_BIND_PASSWORD',
    'search-base': 'ADLDAP_SEARCH_BASE',
}


def loadConfig(configFiles=None, environ=None):
    """
    Load configuration files, then apply environment overrides.

    Returns an ADLDAPConfig. Only this function looks at files and the
    environment; the rest of the package is handed the result.
    """
    x = configparser.ConfigParser(interpolation=None)

    for section, options in DEFAULTS.items():
        x.add_section(section)
        for option, value in options.items():
            x.set(section, option, value)

    if configFiles is None:
        configFiles = CONFIG_FILES
    x.read(configFiles)

    if environ is None:
        environ = os.environ
    for option, variable in ENVIRONMENT.items():
        value = environ.get(variable)
        if value is not None:
            x.set(SECTION, option, value)

    return ADLDAPConfig(
        url=x.get(SECTION, 'url', fallback=None),
        bindAccount=x.get(SECTION, 'bind-account', fallback=None),
        bindPassword=x.get(SECTION, 'bind-password', fallback=None),
        searchBase=x.get(SECTION, 'search-base'),
        debug=x.getboolean(SECTION, 'debug'),
    )
