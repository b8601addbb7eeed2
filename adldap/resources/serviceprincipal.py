"""
Service principal resources.

One resource is one servicePrincipalName value of one account. Its id
is C{<spn>---<samaccountname>}.
"""

import re

from twisted.internet import defer

from ldaptor.protocols import pureldap

from adldap import errors
from adldap.client import equalityMatch
from adldap.resources import ignoreNotFound

SPN_PATTERN = re.compile(
    r'^[\w\d]+/'
    r'(([a-zA-Z]|[a-zA-Z][a-zA-Z0-9\-]*[a-zA-Z0-9])\.)*'
    r'([A-Za-z]|[A-Za-z][A-Za-z0-9\-]*[A-Za-z0-9])'
    r'(:\d{1,5})?$')

SEPARATOR = '---'

# Users and computers both derive from this class.
ACCOUNT_CLASS = 'organizationalPerson'


def validate(spn):
    if not SPN_PATTERN.match(spn):
        raise errors.InvalidServicePrincipalError(spn, 'expected service/host[:port]')
    return spn


def makeId(spn, samAccountName):
    return SEPARATOR.join((spn, samAccountName))


def parseId(resourceId):
    """Split a resource id into the SPN and the sAMAccountName."""
    parts = resourceId.split(SEPARATOR)
    if len(parts) != 2 or not parts[0] or not parts[1]:
        raise errors.InvalidServicePrincipalError(
            resourceId, 'expected <spn>%s<samaccountname>' % SEPARATOR)
    spn, samAccountName = parts
    validate(spn)
    return spn, samAccountName


def _state(spn, samAccountName):
    return {
        'id': makeId(spn, samAccountName),
        'spn': spn,
        'samaccountname': samAccountName,
    }


def _cbCreate(account, spn, samAccountName):
    d = account.addServicePrincipal(spn)
    d.addCallback(lambda _: _state(spn, samAccountName))
    return d


def _getAccount(client, samAccountName):
    return client.getAccount(samAccountName, ACCOUNT_CLASS, ['servicePrincipalName'])


def create(client, data):
    spn = data['spn']
    samAccountName = data['samaccountname']
    d = defer.maybeDeferred(validate, spn)
    d.addCallback(lambda _: _getAccount(client, samAccountName))
    d.addCallback(_cbCreate, spn, samAccountName)
    return d


def _cbRead(results, spn, samAccountName):
    if not results:
        return None
    if len(results) > 1:
        raise errors.AmbiguousResultError(ACCOUNT_CLASS, samAccountName, len(results))
    return _state(spn, samAccountName)


def _search(client, spn, samAccountName):
    filterObject = pureldap.LDAPFilter_and([
        equalityMatch('objectClass', ACCOUNT_CLASS),
        equalityMatch('sAMAccountName', samAccountName),
        equalityMatch('servicePrincipalName', spn),
    ])
    d = client.search(filterObject=filterObject, attributes=None)
    d.addCallback(_cbRead, spn, samAccountName)
    return d


def read(client, resourceId):
    d = defer.maybeDeferred(parseId, resourceId)
    d.addCallback(lambda parsed: _search(client, *parsed))
    return d


def _cbDelete(account, spn):
    if account is None:
        return None
    d = account.removeServicePrincipal(spn)
    d.addCallback(lambda _: None)
    return d


def _delete(client, spn, samAccountName):
    d = _getAccount(client, samAccountName)
    d.addErrback(ignoreNotFound)
    d.addCallback(_cbDelete, spn)
    return d


def delete(client, resourceId):
    d = defer.maybeDeferred(parseId, resourceId)
    d.addCallback(lambda parsed: _delete(client, *parsed))
    return d


def _cbReplaced(state, client, spn, samAccountName):
    d = _delete(client, spn, samAccountName)
    d.addCallback(lambda _: state)
    return d


def _update(client, spn, samAccountName, changes):
    newSPN = changes.get('spn') or spn
    newSamAccountName = changes.get('samaccountname') or samAccountName
    if newSPN == spn and newSamAccountName.lower() == samAccountName.lower():
        return _search(client, spn, samAccountName)

    d = create(client, {'spn': newSPN, 'samaccountname': newSamAccountName})
    d.addCallback(_cbReplaced, client, spn, samAccountName)
    return d


def update(client, resourceId, changes):
    """
    Replace a service principal name by another value or account.

    The new value is added before the old one is removed, so a failure
    leaves the old value in place. Without a change to either the value
    or the account, the resource is read again.
    """
    d = defer.maybeDeferred(parseId, resourceId)
    d.addCallback(lambda parsed: _update(client, parsed[0], parsed[1], changes))
    return d
