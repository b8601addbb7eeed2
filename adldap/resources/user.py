"""User account resources, identified by sAMAccountName."""

from twisted.internet import defer

from adldap import uac
from adldap.resources import ignoreNotFound, serviceprincipal

# Declared attribute name to directory attribute.
ATTRIBUTES = {
    'display_name': 'displayName',
    'user_principal_name': 'userPrincipalName',
}

READ_ATTRIBUTES = [
    'sAMAccountName',
    'displayName',
    'userPrincipalName',
    'servicePrincipalName',
    'userAccountControl',
]


def directoryAttributes(data):
    attributes = dict(data.get('attributes') or {})
    for key, attributeType in ATTRIBUTES.items():
        if data.get(key) is not None:
            attributes[attributeType] = [data[key]]
    return attributes


def _state(account):
    control = int(account.getKnownAttributeValue('userAccountControl') or 0)
    samAccountName = account.getSamAccountName()
    return {
        'id': samAccountName,
        'samaccountname': samAccountName,
        'distinguished_name': account.dn.getText(),
        'organizational_unit': account.parentDN().getText(),
        'name': account.dn.name(),
        'display_name': account.getKnownAttributeValue('displayName'),
        'user_principal_name': account.getKnownAttributeValue('userPrincipalName'),
        'service_principal_names': sorted(account.getKnownAttributeValues('servicePrincipalName')),
        'enabled': not uac.isSet(control, uac.ACCOUNTDISABLE),
        'password_never_expires': uac.isSet(control, uac.DONT_EXPIRE_PASSWORD),
    }


def _cbLoaded(account):
    return _state(account)


def _readState(account):
    d = account.ensureLoaded(*READ_ATTRIBUTES)
    d.addCallback(_cbLoaded)
    return d


def _addServicePrincipals(account, spns):
    d = defer.succeed(None)
    for spn in spns:
        d.addCallback(lambda _, spn=spn: account.addServicePrincipal(spn))
    return d


def _removeServicePrincipals(account, spns):
    d = defer.succeed(None)
    for spn in spns:
        d.addCallback(lambda _, spn=spn: account.removeServicePrincipal(spn))
    return d


def _validateServicePrincipals(spns):
    for spn in spns:
        serviceprincipal.validate(spn)
    return spns


def _cbCreated(account, spns):
    d = _addServicePrincipals(account, spns)
    d.addCallback(lambda _: _readState(account))
    return d


def _createUser(spns, client, data):
    attributes = directoryAttributes(data)
    if data.get('name'):
        attributes['name'] = [data['name']]
    d = client.createUser(
        data['samaccountname'],
        data['organizational_unit'],
        data['password'],
        attributes,
        enabled=data.get('enabled', True),
        passwordNeverExpires=data.get('password_never_expires', False))
    d.addCallback(_cbCreated, spns)
    return d


def create(client, data):
    """Create a user. Service principal names are checked before anything is sent."""
    d = defer.maybeDeferred(_validateServicePrincipals,
                            data.get('service_principal_names') or [])
    d.addCallback(_createUser, client, data)
    return d


def read(client, resourceId):
    d = client.getAccount(resourceId, 'user', READ_ATTRIBUTES)
    d.addCallback(_readState)
    d.addErrback(ignoreNotFound)
    return d


def _cbSyncServicePrincipals(present, account, wanted):
    d = _addServicePrincipals(account, [x for x in wanted if x not in present])
    d.addCallback(lambda _: _removeServicePrincipals(
        account, [x for x in present if x not in wanted]))
    return d


def _syncServicePrincipals(_, account, wanted):
    _validateServicePrincipals(wanted)
    d = account.getServicePrincipals()
    d.addCallback(_cbSyncServicePrincipals, account, wanted)
    return d


def _cbUpdate(account, changes):
    d = defer.succeed(None)
    if 'organizational_unit' in changes:
        d.addCallback(lambda _: account.move(changes['organizational_unit']))
    if 'name' in changes:
        d.addCallback(lambda _: account.rename(changes['name']))
    if 'password' in changes:
        d.addCallback(lambda _: account.setPassword(changes['password']))
    attributes = directoryAttributes(changes)
    if attributes:
        d.addCallback(lambda _: account.updateAttributes(attributes))
    if 'enabled' in changes:
        if changes['enabled']:
            d.addCallback(lambda _: account.enable())
        else:
            d.addCallback(lambda _: account.disable())
    if 'password_never_expires' in changes:
        d.addCallback(lambda _: account.setPasswordNeverExpires(
            changes['password_never_expires']))
    if 'service_principal_names' in changes:
        d.addCallback(_syncServicePrincipals, account,
                      changes['service_principal_names'] or [])
    d.addCallback(lambda _: _readState(account))
    return d


def update(client, resourceId, changes):
    """
    Apply changed declared attributes to an existing user.

    Steps run in a fixed order: move, rename, password, attributes,
    flags, service principals. A failure stops the remaining steps.
    """
    d = client.getAccount(resourceId, 'user', READ_ATTRIBUTES)
    d.addCallback(_cbUpdate, changes)
    return d


def _cbDelete(account):
    if account is None:
        return None
    d = account.delete()
    d.addCallback(lambda _: None)
    return d


def delete(client, resourceId):
    d = client.getAccount(resourceId, 'user')
    d.addErrback(ignoreNotFound)
    d.addCallback(_cbDelete)
    return d
