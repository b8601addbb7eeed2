"""Organizational unit resources, identified by their distinguished name."""

from adldap.resources import ignoreNotFound


def _state(ou):
    return {
        'id': ou.dn.getText(),
        'distinguished_name': ou.dn.getText(),
        'name': ou.dn.name(),
    }


def create(client, data):
    if data.get('create_parents', False):
        d = client.createOrganizationalUnitRecursive(data['distinguished_name'])
    else:
        d = client.createOrganizationalUnit(data['distinguished_name'])
    d.addCallback(_state)
    return d


def _cbRead(ou):
    if ou is None:
        return None
    return _state(ou)


def read(client, resourceId):
    d = client.getOrganizationalUnit(resourceId)
    d.addErrback(ignoreNotFound)
    d.addCallback(_cbRead)
    return d


def _cbUpdate(ou, changes):
    d = ou.rename(changes['distinguished_name'])
    d.addCallback(_state)
    return d


def update(client, resourceId, changes):
    d = client.getOrganizationalUnit(resourceId)
    if 'distinguished_name' in changes:
        d.addCallback(_cbUpdate, changes)
    else:
        d.addCallback(_state)
    return d


def _cbDelete(ou):
    if ou is None:
        return None
    d = ou.delete()
    d.addCallback(lambda _: None)
    return d


def delete(client, resourceId):
    """Delete the unit if it exists. Units with children are refused."""
    d = client.getOrganizationalUnit(resourceId)
    d.addErrback(ignoreNotFound)
    d.addCallback(_cbDelete)
    return d
