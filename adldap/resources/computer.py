"""Computer account resources, identified by sAMAccountName."""

from adldap.resources import ignoreNotFound


def samAccountName(name):
    """Computer account names end with "$"."""
    if name.endswith('$'):
        return name
    return name + '$'


def _state(account):
    name = account.getSamAccountName()
    return {
        'id': name,
        'name': name,
        'distinguished_name': account.dn.getText(),
        'organizational_unit': account.parentDN().getText(),
    }


def create(client, data):
    d = client.createComputer(
        samAccountName(data['name']),
        data['organizational_unit'],
        data.get('attributes'))
    d.addCallback(_state)
    return d


def read(client, resourceId):
    d = client.getAccount(samAccountName(resourceId), 'computer')
    d.addCallback(_state)
    d.addErrback(ignoreNotFound)
    return d


def _cbUpdate(account, changes):
    if 'organizational_unit' in changes:
        d = account.move(changes['organizational_unit'])
    else:
        d = account.refresh()
    d.addCallback(_state)
    return d


def update(client, resourceId, changes):
    d = client.getAccount(samAccountName(resourceId), 'computer')
    d.addCallback(_cbUpdate, changes)
    return d


def _cbDelete(account):
    if account is None:
        return None
    d = account.delete()
    d.addCallback(lambda _: None)
    return d


def delete(client, resourceId):
    d = client.getAccount(samAccountName(resourceId), 'computer')
    d.addErrback(ignoreNotFound)
    d.addCallback(_cbDelete)
    return d
