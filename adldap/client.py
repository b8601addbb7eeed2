"""
Sessions with an Active Directory server.

A DirectoryClient wraps a connected, bound ldaptor LDAPClient and the
search base. Every method returns a Deferred; each one sends its
requests one after another, never in parallel.
"""

import re

from twisted.internet import defer
from twisted.python import log
from twisted.python.failure import Failure

from ldaptor import ldapfilter
from ldaptor.protocols import pureber, pureldap
from ldaptor.protocols.ldap import ldapclient, ldapconnector, ldaperrors

from adldap import errors, uac
from adldap.account import Account
from adldap.distinguishedname import (
    AttributeTypeAndValue,
    DistinguishedName,
    RelativeDistinguishedName,
)
from adldap.entry import PSEUDO_ATTRIBUTES, DirectoryEntry, valueList
from adldap.organizationalunit import OrganizationalUnit

# Names that look like this are distinguished names, anything else is a
# sAMAccountName.
DN_PATTERN = re.compile(r'.+=.+')

CONTAINER_CLASSES = ('organizationalUnit', 'container', 'domain')


def decodeValue(value):
    if isinstance(value, bytes):
        try:
            return value.decode('utf-8')
        except UnicodeDecodeError:
            return value
    return value


def encodeValue(value):
    if isinstance(value, bytes):
        return value
    return str(value).encode('utf-8')


def checkResult(msg, operation, dn):
    """
    Raise the ldaperrors exception matching a non-successful result.

    The message names the operation and its target.
    """
    if msg.resultCode != ldaperrors.Success.resultCode:
        raise ldaperrors.get(
            msg.resultCode,
            '%s %s: %s' % (operation, dn, decodeValue(msg.errorMessage)))
    return msg


def equalityMatch(attributeType, value):
    return pureldap.LDAPFilter_equalityMatch(
        attributeDesc=pureldap.LDAPAttributeDescription(value=attributeType),
        assertionValue=pureldap.LDAPAssertionValue(value=value))


def objectClassFilter(objectClass):
    """Match objects of a class, or all objects for C{*}."""
    if objectClass == '*':
        return pureldap.LDAPFilter_present(value='objectClass')
    return equalityMatch('objectClass', objectClass)


def nameAttribute(name):
    if DN_PATTERN.search(name):
        return 'distinguishedName'
    return 'sAMAccountName'


def describeClass(objectClass):
    if objectClass == '*':
        return 'directory'
    return objectClass


def _describeModification(m):
    return '%s %s' % (m.__class__.__name__.lower(), m.key)


def _searchFilter(filterObject, filterText):
    """
    Combine a filter object and filter text, both optional.

    @raise ldapfilter.InvalidLDAPFilter: when C{filterText} does not parse.
    """
    if filterObject is None and filterText is None:
        return pureldap.LDAPFilterMatchAll
    elif filterObject is None:
        return ldapfilter.parseFilter(filterText)
    elif filterText is None:
        return filterObject
    f = ldapfilter.parseFilter(filterText)
    return pureldap.LDAPFilter_and((f, filterObject))


def _attributeNames(attributes):
    if attributes is None:
        return []
    return [x for x in attributes if x not in PSEUDO_ATTRIBUTES]


def _firstValue(attributes, name):
    for key, values in attributes.items():
        if key.lower() == name.lower():
            values = valueList(values)
            if values:
                return values[0]
    return None


def _removeAttribute(attributes, name):
    for key in list(attributes.keys()):
        if key.lower() == name.lower():
            del attributes[key]


class DirectoryClient:
    """
    Operations on the directory below one search base.

    @ivar protocol: a connected and bound LDAPClient, or anything that
    offers the same send and send_multiResponse methods.

    @ivar searchBase: the DistinguishedName that searches start from
    and that organizational units have to be created below.
    """

    debug = False

    def __init__(self, protocol, searchBase, debug=False):
        self.protocol = protocol
        self.searchBase = DistinguishedName(searchBase)
        self.debug = debug

    # Raw protocol operations

    def _cbSearchMsg(self, msg, d, callback, baseDN):
        if isinstance(msg, pureldap.LDAPSearchResultDone):
            try:
                checkResult(msg, 'search', baseDN)
            except ldaperrors.LDAPException:
                d.errback(Failure())
                return True

            d.callback(None)
            return True
        elif isinstance(msg, pureldap.LDAPSearchResultEntry):
            callback(msg)
            return False
        elif isinstance(msg, pureldap.LDAPSearchResultReference):
            return False
        else:
            raise ldaperrors.LDAPProtocolError("bad search response: %r" % msg)

    def _entryFromResult(self, msg, requestedAttributes):
        attributes = {}
        for key, values in msg.attributes:
            attributes[decodeValue(key)] = [decodeValue(x) for x in values]
        return DirectoryEntry(
            self,
            DistinguishedName(decodeValue(msg.objectName)),
            attributes,
            requestedAttributes)

    def _cbSearchResults(self, _, results, requestedAttributes):
        return [self._entryFromResult(msg, requestedAttributes) for msg in results]

    def search(self,
               filterObject=None,
               filterText=None,
               attributes=(),
               baseDN=None,
               scope=None):
        """
        Search the directory.

        Searches the whole subtree below the search base unless told
        otherwise. Aliases are never dereferenced and no size or time
        limit is sent. No attributes are requested when C{attributes}
        is None or empty.

        Returns a Deferred firing with a list of DirectoryEntry, each
        tracking the requested attributes.
        """
        try:
            filterObject = _searchFilter(filterObject, filterText)
        except ldapfilter.InvalidLDAPFilter:
            return defer.fail()

        if baseDN is None:
            baseDN = self.searchBase
        baseDN = DistinguishedName(baseDN)
        if scope is None:
            scope = pureldap.LDAP_SCOPE_wholeSubtree

        requested = _attributeNames(attributes)

        d = defer.Deferred()
        results = []
        op = pureldap.LDAPSearchRequest(
            baseObject=baseDN.getText(),
            scope=scope,
            derefAliases=pureldap.LDAP_DEREF_neverDerefAliases,
            sizeLimit=0,
            timeLimit=0,
            typesOnly=0,
            filter=filterObject,
            attributes=requested or ['1.1'])
        if self.debug:
            log.msg('search %s scope=%d filter=%s attributes=%s' % (
                baseDN.getText(),
                scope,
                decodeValue(filterObject.asText()),
                ','.join(requested or ['1.1'])))
        try:
            dsend = self.protocol.send_multiResponse(
                op, self._cbSearchMsg, d, results.append, baseDN)
        except ldapclient.LDAPClientConnectionLostException:
            d.errback(Failure())
        else:
            d.addCallback(self._cbSearchResults, results, requested)

            def rerouteerr(e):
                d.errback(e)
                # returning None will stop the error
                # from being propagated and logged.

            dsend.addErrback(rerouteerr)
        return d

    def _cbResult(self, msg, responseClass, operation, dn):
        assert isinstance(msg, responseClass), \
            "%s response was not an %s: %r" % (operation, responseClass.__name__, msg)
        return checkResult(msg, operation, dn)

    def add(self, dn, attributes):
        """
        Add a new object.

        @param attributes: a mapping of attribute type to list of values.
        objectClass is sent first, the others sorted by name.
        """
        dn = DistinguishedName(dn)
        attributes = dict(attributes)
        a = []
        if attributes.get('objectClass', None):
            a.append(('objectClass', attributes['objectClass']))
            del attributes['objectClass']
        attributes = a + sorted(attributes.items())
        del a

        ldapAttrs = []
        for attrType, values in attributes:
            ldapAttrType = pureldap.LDAPAttributeDescription(attrType)
            l = []
            for value in valueList(values):
                l.append(pureldap.LDAPAttributeValue(encodeValue(value)))
            ldapValues = pureber.BERSet(l)
            ldapAttrs.append((ldapAttrType, ldapValues))
        op = pureldap.LDAPAddRequest(entry=dn.getText(), attributes=ldapAttrs)
        log.msg('add %s' % dn.getText())
        d = self.protocol.send(op)
        d.addCallback(self._cbResult, pureldap.LDAPAddResponse, 'add', dn)
        return d

    def modify(self, dn, modifications):
        """
        Apply a list of ldaptor.delta modifications to one object.
        """
        dn = DistinguishedName(dn)
        op = pureldap.LDAPModifyRequest(
            object=dn.getText(),
            modification=[x.asLDAP() for x in modifications])
        log.msg('modify %s: %s' % (
            dn.getText(),
            ', '.join([_describeModification(x) for x in modifications])))
        d = self.protocol.send(op)
        d.addCallback(self._cbResult, pureldap.LDAPModifyResponse, 'modify', dn)
        return d

    def modifyDN(self, dn, newRDN, newSuperior=None):
        """
        Rename an object, and move it when C{newSuperior} is given.

        The old RDN value is always removed.
        """
        dn = DistinguishedName(dn)
        if not isinstance(newRDN, RelativeDistinguishedName):
            newRDN = DistinguishedName(newRDN).split()[0]
        if newSuperior is not None:
            newSuperior = DistinguishedName(newSuperior).getText()
        op = pureldap.LDAPModifyDNRequest(
            entry=dn.getText(),
            newrdn=newRDN.getText(),
            deleteoldrdn=1,
            newSuperior=newSuperior)
        log.msg('modify DN %s: newrdn=%s newsuperior=%s' % (
            dn.getText(), newRDN.getText(), newSuperior))
        d = self.protocol.send(op)
        d.addCallback(self._cbResult, pureldap.LDAPModifyDNResponse, 'modify DN', dn)
        return d

    def delete(self, dn):
        dn = DistinguishedName(dn)
        op = pureldap.LDAPDelRequest(entry=dn.getText())
        log.msg('delete %s' % dn.getText())
        d = self.protocol.send(op)
        d.addCallback(self._cbResult, pureldap.LDAPDelResponse, 'delete', dn)
        return d

    # Lookups

    def _cbObjectExists(self, results, objectClass, name):
        if len(results) > 1:
            raise errors.AmbiguousResultError(describeClass(objectClass), name, len(results))
        return len(results) == 1

    def objectExists(self, name, objectClass='*'):
        """
        Is there exactly one object of C{objectClass} called C{name}.

        C{name} is a distinguished name or a sAMAccountName.
        """
        if isinstance(name, DistinguishedName):
            name = name.getText()
        filterObject = pureldap.LDAPFilter_and([
            objectClassFilter(objectClass),
            equalityMatch(nameAttribute(name), name),
        ])
        d = self.search(filterObject=filterObject, attributes=None)
        d.addCallback(self._cbObjectExists, objectClass, name)
        return d

    def containerExists(self, dn):
        """Can objects be placed in C{dn}."""
        dn = DistinguishedName(dn)
        if dn == self.searchBase:
            return defer.succeed(True)
        filterObject = pureldap.LDAPFilter_and([
            pureldap.LDAPFilter_or([
                equalityMatch('objectClass', x) for x in CONTAINER_CLASSES]),
            equalityMatch('distinguishedName', dn.getText()),
        ])
        d = self.search(filterObject=filterObject, attributes=None)
        d.addCallback(self._cbObjectExists, 'container', dn.getText())
        return d

    def _cbExactlyOne(self, results, objectClass, name):
        if not results:
            raise errors.NotFoundError(describeClass(objectClass), name)
        if len(results) > 1:
            raise errors.AmbiguousResultError(describeClass(objectClass), name, len(results))
        return results[0]

    def getEntryByFilter(self, value, matchAttribute, objectClass='*', attributes=()):
        filterObject = pureldap.LDAPFilter_and([
            objectClassFilter(objectClass),
            equalityMatch(matchAttribute, value),
        ])
        d = self.search(filterObject=filterObject, attributes=attributes)
        d.addCallback(self._cbExactlyOne, objectClass, value)
        return d

    def getObject(self, name, objectClass='*', attributes=()):
        if isinstance(name, DistinguishedName):
            name = name.getText()
        return self.getEntryByFilter(name, nameAttribute(name), objectClass, attributes)

    def getObjectByDN(self, dn, attributes=()):
        dn = DistinguishedName(dn)
        return self.getEntryByFilter(dn.getText(), 'distinguishedName', '*', attributes)

    def getAccount(self, samAccountName, objectClass='user', attributes=()):
        attributes = ['sAMAccountName'] + [
            x for x in _attributeNames(attributes) if x.lower() != 'samaccountname']
        d = self.getObject(samAccountName, objectClass, attributes)
        d.addCallback(Account)
        return d

    def getOrganizationalUnit(self, dn, attributes=()):
        dn = DistinguishedName(dn)
        d = self.getObject(dn.getText(), 'organizationalUnit', attributes)
        d.addCallback(OrganizationalUnit)
        return d

    # Creation and deletion

    def _cbCreateObjectAdded(self, msg, dn, attributes):
        return self.getObjectByDN(dn, attributes=sorted(attributes))

    def _cbCreateObject(self, exists, dn, attributes, objectClass):
        if exists:
            raise errors.AlreadyExistsError(objectClass, dn.getText())
        d = self.add(dn, attributes)
        d.addCallback(self._cbCreateObjectAdded, dn, attributes)
        return d

    def createObject(self, dn, attributes, objectClass):
        """
        Create an object of C{objectClass} unless one exists at C{dn}.

        Returns a Deferred firing with the new DirectoryEntry, fetched
        back from the server with the written attributes.
        """
        dn = DistinguishedName(dn)
        attributes = dict(attributes)
        attributes.setdefault('objectClass', [objectClass])
        d = self.objectExists(dn.getText(), objectClass)
        d.addCallback(self._cbCreateObject, dn, attributes, objectClass)
        return d

    def _checkOrganizationalUnitDN(self, dn):
        if not self.searchBase.isAncestorOf(dn):
            raise errors.InvalidOrganizationalUnitError(
                dn.getText(),
                'is not below the search base "%s"' % self.searchBase.getText())
        if dn.rdnType().lower() != 'ou':
            raise errors.InvalidOrganizationalUnitError(
                dn.getText(), 'must be named OU=...')

    def _cbCreateOrganizationalUnitParent(self, exists, dn, parent):
        if not exists:
            raise errors.ContainerNotFoundError(dn.getText(), parent.getText())
        d = self.createObject(dn, {'ou': [dn.name()]}, 'organizationalUnit')
        d.addCallback(OrganizationalUnit)
        return d

    def _cbCreateOrganizationalUnit(self, _, dn):
        parent = dn.parent()
        d = self.containerExists(parent)
        d.addCallback(self._cbCreateOrganizationalUnitParent, dn, parent)
        return d

    def createOrganizationalUnit(self, dn):
        """
        Create an organizational unit whose parent exists already.
        """
        dn = DistinguishedName(dn)
        d = defer.maybeDeferred(self._checkOrganizationalUnitDN, dn)
        d.addCallback(self._cbCreateOrganizationalUnit, dn)
        return d

    def _cbEnsureContainer(self, exists, dn):
        if exists:
            return None
        return self.createOrganizationalUnit(dn)

    def _ensureContainer(self, _, dn):
        d = self.containerExists(dn)
        d.addCallback(self._cbEnsureContainer, dn)
        return d

    def _cbCreateAncestors(self, _, dn):
        ancestors = []
        parent = dn.parent()
        for _ in range(len(dn)):
            if not self.searchBase.isAncestorOf(parent):
                break
            ancestors.insert(0, parent)
            parent = parent.parent()

        d = defer.succeed(None)
        for ancestor in ancestors:
            d.addCallback(self._ensureContainer, ancestor)
        return d

    def createOrganizationalUnitRecursive(self, dn):
        """
        Create an organizational unit along with any missing parents.

        Parents are created top-down; existing containers are left as
        they are.
        """
        dn = DistinguishedName(dn)
        d = defer.maybeDeferred(self._checkOrganizationalUnitDN, dn)
        d.addCallback(self._cbCreateAncestors, dn)
        d.addCallback(lambda _: self.createOrganizationalUnit(dn))
        return d

    def _cbCreateAccountContainer(self, exists, samAccountName, container,
                                  attributes, objectClass, initialControlFlags):
        cn = (_firstValue(attributes, 'name')
              or _firstValue(attributes, 'displayName')
              or samAccountName.rstrip('$'))
        dn = container.child(
            RelativeDistinguishedName([AttributeTypeAndValue('CN', cn)]))
        if not exists:
            raise errors.ContainerNotFoundError(dn.getText(), container.getText())

        # The name attribute follows the RDN, the server refuses to set it.
        _removeAttribute(attributes, 'name')
        _removeAttribute(attributes, 'sAMAccountName')
        _removeAttribute(attributes, 'userAccountControl')
        attributes['sAMAccountName'] = [samAccountName]
        attributes['userAccountControl'] = [str(initialControlFlags)]
        d = self.createObject(dn, attributes, objectClass)
        d.addCallback(Account)
        return d

    def _cbCreateAccount(self, exists, samAccountName, container,
                         attributes, objectClass, initialControlFlags):
        if exists:
            raise errors.AlreadyExistsError(objectClass, samAccountName)
        d = self.containerExists(container)
        d.addCallback(self._cbCreateAccountContainer, samAccountName, container,
                      attributes, objectClass, initialControlFlags)
        return d

    def createAccount(self, samAccountName, container, attributes,
                      objectClass, initialControlFlags):
        """
        Create an account in C{container}.

        The CN is taken from the name attribute, else displayName, else
        the sAMAccountName without a trailing "$". userAccountControl is
        part of the add request.
        """
        container = DistinguishedName(container)
        attributes = dict(attributes or {})
        d = self.objectExists(samAccountName)
        d.addCallback(self._cbCreateAccount, samAccountName, container,
                      attributes, objectClass, initialControlFlags)
        return d

    def _cbUserCreated(self, account, password, enabled, passwordNeverExpires):
        d = account.setPassword(password)
        if passwordNeverExpires:
            d.addCallback(lambda _: account.setPasswordNeverExpires(True))
        if enabled:
            d.addCallback(lambda _: account.enable())
        return d

    def createUser(self, samAccountName, container, password,
                   attributes=None, enabled=True, passwordNeverExpires=False):
        """
        Create a user account.

        The account is created disabled and never expiring, gets its
        password, and is enabled last when C{enabled} is true.
        """
        attributes = dict(attributes or {})
        attributes['accountExpires'] = ['0']
        d = self.createAccount(samAccountName, container, attributes,
                               'user', uac.NEW_USER)
        d.addCallback(self._cbUserCreated, password, enabled, passwordNeverExpires)
        return d

    def createComputer(self, samAccountName, container, attributes=None):
        return self.createAccount(samAccountName, container, attributes,
                                  'computer', uac.NEW_COMPUTER)

    def _cbDeleteObject(self, exists, dn):
        if not exists:
            return None
        return self.delete(dn)

    def deleteObject(self, dn, objectClass='*'):
        """Delete the object at C{dn} if there is one."""
        dn = DistinguishedName(dn)
        d = self.objectExists(dn.getText(), objectClass)
        d.addCallback(self._cbDeleteObject, dn)
        return d


def _cbSearchBase(results):
    if results:
        value = results[0].getKnownAttributeValue('defaultNamingContext')
        if value:
            return DistinguishedName(value)
    raise errors.SearchBaseUndetectableError


def detectSearchBase(protocol):
    """
    Read defaultNamingContext from the root DSE.

    Returns a Deferred firing with a DistinguishedName.
    """
    client = DirectoryClient(protocol, '')
    d = client.search(
        filterObject=pureldap.LDAPFilterMatchAll,
        attributes=['defaultNamingContext'],
        baseDN='',
        scope=pureldap.LDAP_SCOPE_baseObject)
    d.addCallback(_cbSearchBase)
    return d


def _cbSessionReady(searchBase, protocol, config):
    log.msg('using search base %s' % searchBase.getText())
    return DirectoryClient(protocol, searchBase, debug=config.debug)


def _cbBind(msg, protocol, config):
    if msg.resultCode != ldaperrors.Success.resultCode:
        e = ldaperrors.get(msg.resultCode, decodeValue(msg.errorMessage))
        raise errors.BindError(config.bindAccount, str(e))

    searchBase = config.getSearchBase()
    if searchBase is not None:
        d = defer.succeed(searchBase)
    else:
        d = detectSearchBase(protocol)
    d.addCallback(_cbSessionReady, protocol, config)
    return d


def startSession(protocol, config):
    """
    Bind an already connected LDAPClient and determine the search base.

    Returns a Deferred firing with a DirectoryClient.
    """
    log.msg('binding as %s' % config.bindAccount)
    op = pureldap.LDAPBindRequest(
        dn=config.bindAccount or '',
        auth=config.bindPassword or '')
    d = protocol.send(op)
    d.addCallback(_cbBind, protocol, config)
    return d


def _ebConnect(fail, url):
    raise errors.DirectoryConnectionError(url, fail.getErrorMessage())


def _dial(endpointStr, reactor, config, clientProtocol):
    log.msg('connecting to %s' % config.getURL())
    d = ldapconnector.connectToLDAPEndpoint(reactor, endpointStr, clientProtocol)
    d.addErrback(_ebConnect, config.getURL())
    d.addCallback(startSession, config)
    return d


def connect(reactor, config, clientProtocol=ldapclient.LDAPClient):
    """
    Connect to the server named in C{config} and open a session.

    Returns a Deferred firing with a DirectoryClient.
    """
    d = defer.maybeDeferred(config.getEndpointString)
    d.addCallback(_dial, reactor, config, clientProtocol)
    return d
