"""Entry point for the orchestration host."""

from twisted.python import log

from adldap import client
from adldap import config as adconfig
from adldap.resources import computer, organizationalunit, serviceprincipal, user

RESOURCES = {
    'adldap_organizational_unit': organizationalunit,
    'adldap_user': user,
    'adldap_computer': computer,
    'adldap_service_principal': serviceprincipal,
}


def getHandler(resourceType):
    """Get the handler module for a host resource type name."""
    try:
        return RESOURCES[resourceType]
    except KeyError:
        raise KeyError('unknown resource type %r, expected one of %s' % (
            resourceType, ', '.join(sorted(RESOURCES))))


def configure(reactor, config=None):
    """
    Open the directory session the resource handlers work with.

    Configuration is loaded from the files and the environment when
    none is given. Returns a Deferred firing with a DirectoryClient.
    """
    if config is None:
        config = adconfig.loadConfig()
    log.msg('configuring %r' % config)
    return client.connect(reactor, config)
