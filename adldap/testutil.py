"""Test doubles standing in for a connected LDAPClient."""

from twisted.internet import defer
from twisted.python import failure

from ldaptor import testutil
from ldaptor.protocols import pureber, pureldap
from ldaptor.protocols.ldap import ldaperrors

from adldap import errors
from adldap.distinguishedname import DistinguishedName


class LDAPClientTestDriver(testutil.LDAPClientTestDriver):
    """
    ldaptor's LDAPClientTestDriver, also accepting a Failure in place
    of a whole list of responses. The Deferred of that request then
    fails without the handler seeing any response, the way a lost
    connection looks to the caller.
    """

    def _response(self):
        responses = testutil.LDAPClientTestDriver._response(self)
        if isinstance(responses, failure.Failure):
            return [responses]
        return responses


def searchResultEntry(dn, **attributes):
    """Build an LDAPSearchResultEntry from keyword attributes."""
    return pureldap.LDAPSearchResultEntry(
        objectName=dn,
        attributes=[(key, list(values)) for key, values in sorted(attributes.items())])


def searchResultDone(resultCode=0, errorMessage=''):
    return pureldap.LDAPSearchResultDone(resultCode=resultCode, errorMessage=errorMessage)


def _text(value):
    if isinstance(value, bytes):
        return value.decode('utf-8')
    return value


# objectClass values the server adds for the structural class written.
CLASS_HIERARCHY = {
    'user': ['top', 'person', 'organizationalPerson', 'user'],
    'computer': ['top', 'person', 'organizationalPerson', 'user', 'computer'],
    'organizationalunit': ['top', 'organizationalUnit'],
    'container': ['top', 'container'],
}

# Attributes nobody can read back.
HIDDEN_ATTRIBUTES = ('unicodepwd',)


def modifications(op):
    """
    Decode the changes of an LDAPModifyRequest.

    Yields C{(operation, attribute type, values)}. ldaptor encodes each
    change to BER when the request is built, so they are decoded here.
    Values of hidden attributes stay bytes.
    """
    for mod in op.modification:
        if isinstance(mod, bytes):
            mod, _ = pureber.berDecodeObject(pureber.BERDecoderContext(), mod)
        operation = mod[0].value
        key = _text(mod[1][0].value)
        if key.lower() in HIDDEN_ATTRIBUTES:
            values = [x.value for x in mod[1][1]]
        else:
            values = [_text(x.value) for x in mod[1][1]]
        yield operation, key, values


class FakeEntry:
    """Attributes of one object of the FakeDirectory."""

    def __init__(self, dn, attributes=None):
        self.dn = dn
        self.attributes = {}
        for key, values in (attributes or {}).items():
            self.set(key, values)

    def get(self, key):
        return list(self.attributes.get(key.lower(), (key, []))[1])

    def set(self, key, values):
        values = list(values)
        if values:
            self.attributes[key.lower()] = (key, values)
        else:
            self.attributes.pop(key.lower(), None)

    def has(self, key):
        return key.lower() in self.attributes

    def items(self):
        return list(self.attributes.values())


class FakeDirectory:
    """
    An in-memory Active Directory lookalike.

    Answers pureldap bind, search, add, modify, modify DN and delete
    requests the way a domain controller would, closely enough for
    DirectoryClient. Filters may use and, or, not, equality and
    presence. All sent requests are recorded in self.sent.
    """

    def __init__(self,
                 searchBase='DC=example,DC=com',
                 bindAccount=None,
                 bindPassword=None):
        self.sent = []
        self.connected = 1
        self.bindAccount = bindAccount
        self.bindPassword = bindPassword
        self.entries = {}
        self.searchBase = DistinguishedName(searchBase)
        self.rootDSE = FakeEntry(DistinguishedName(''), {
            'objectClass': ['top'],
            'defaultNamingContext': [self.searchBase.getText()],
        })
        self.addEntry(self.searchBase, {
            'objectClass': ['top', 'domain', 'domainDNS'],
        })

    # Inspection helpers for tests

    def addEntry(self, dn, attributes):
        """Store an object directly, without any checks."""
        dn = DistinguishedName(dn)
        self.entries[dn] = self._newEntry(dn, attributes)
        return self.entries[dn]

    def exists(self, dn):
        return DistinguishedName(dn) in self.entries

    def getAttributeValues(self, dn, name):
        return self.entries[DistinguishedName(dn)].get(name)

    def sentOfType(self, requestClass):
        return [x for x in self.sent if isinstance(x, requestClass)]

    def _newEntry(self, dn, attributes):
        e = FakeEntry(dn, attributes)
        classes = e.get('objectClass')
        for objectClass in reversed(classes):
            if objectClass.lower() in CLASS_HIERARCHY:
                classes = CLASS_HIERARCHY[objectClass.lower()]
                break
        else:
            if classes and 'top' not in classes:
                classes = ['top'] + classes
        e.set('objectClass', classes)
        self._setNames(e)
        return e

    def _setNames(self, e):
        e.set('distinguishedName', [e.dn.getText()])
        if len(e.dn):
            e.set('name', [e.dn.name()])
            e.set(e.dn.rdnType(), [e.dn.name()])

    # The protocol

    def send(self, op):
        self.sent.append(op)
        if isinstance(op, pureldap.LDAPBindRequest):
            r = self._bind(op)
        elif isinstance(op, pureldap.LDAPAddRequest):
            r = self._add(op)
        elif isinstance(op, pureldap.LDAPModifyRequest):
            r = self._modify(op)
        elif isinstance(op, pureldap.LDAPModifyDNRequest):
            r = self._modifyDN(op)
        elif isinstance(op, pureldap.LDAPDelRequest):
            r = self._delete(op)
        else:
            raise AssertionError('%s cannot handle %r' % (self.__class__.__name__, op))
        return defer.succeed(r)

    def send_multiResponse(self, op, handler, *args, **kwargs):
        d = defer.Deferred()
        self.sent.append(op)
        assert isinstance(op, pureldap.LDAPSearchRequest), \
            '%s cannot handle %r' % (self.__class__.__name__, op)
        responses = self._search(op)
        while responses:
            r = responses.pop(0)
            ret = handler(r, *args, **kwargs)
            assert bool(ret) == (not responses), \
                'handler returned %r with %d responses to go' % (ret, len(responses))
        return d

    def _bind(self, op):
        if self.bindAccount is not None:
            if (_text(op.dn) != self.bindAccount
                    or _text(op.auth) != self.bindPassword):
                return pureldap.LDAPBindResponse(
                    resultCode=ldaperrors.LDAPInvalidCredentials.resultCode,
                    errorMessage='invalid credentials')
        return pureldap.LDAPBindResponse(resultCode=ldaperrors.Success.resultCode)

    def _parseDN(self, text):
        try:
            return DistinguishedName(_text(text))
        except errors.InvalidDistinguishedName:
            return None

    def _result(self, responseClass, resultCode, errorMessage=''):
        return responseClass(resultCode=resultCode, errorMessage=errorMessage)

    def _add(self, op):
        dn = self._parseDN(op.entry)
        if dn is None or not len(dn):
            return self._result(pureldap.LDAPAddResponse,
                                ldaperrors.LDAPInvalidDNSyntax.resultCode)
        if dn in self.entries:
            return self._result(pureldap.LDAPAddResponse,
                                ldaperrors.LDAPEntryAlreadyExists.resultCode,
                                'entry exists')
        if dn.parent() not in self.entries:
            return self._result(pureldap.LDAPAddResponse,
                                ldaperrors.LDAPNoSuchObject.resultCode,
                                'parent does not exist')
        attributes = {}
        for attr, values in op.attributes:
            key = _text(attr.value)
            if key.lower() in HIDDEN_ATTRIBUTES:
                attributes[key] = [x.value for x in values]
            else:
                attributes[key] = [_text(x.value) for x in values]
        self.entries[dn] = self._newEntry(dn, attributes)
        return self._result(pureldap.LDAPAddResponse, ldaperrors.Success.resultCode)

    def _modify(self, op):
        dn = self._parseDN(op.object)
        e = self.entries.get(dn)
        if e is None:
            return self._result(pureldap.LDAPModifyResponse,
                                ldaperrors.LDAPNoSuchObject.resultCode)

        # Changes are applied to a copy and kept only when all succeed.
        changed = FakeEntry(e.dn)
        changed.attributes = dict(e.attributes)
        for operation, key, values in modifications(op):
            present = changed.get(key)
            if operation == 0:
                if [x for x in values if x in present]:
                    return self._result(pureldap.LDAPModifyResponse,
                                        ldaperrors.LDAPAttributeOrValueExists.resultCode)
                changed.set(key, present + values)
            elif operation == 1:
                if not present or [x for x in values if x not in present]:
                    return self._result(pureldap.LDAPModifyResponse,
                                        ldaperrors.LDAPNoSuchAttribute.resultCode)
                if values:
                    changed.set(key, [x for x in present if x not in values])
                else:
                    changed.set(key, [])
            elif operation == 2:
                changed.set(key, values)
            else:
                return self._result(pureldap.LDAPModifyResponse,
                                    ldaperrors.LDAPProtocolError.resultCode)
        e.attributes = changed.attributes
        return self._result(pureldap.LDAPModifyResponse, ldaperrors.Success.resultCode)

    def _modifyDN(self, op):
        dn = self._parseDN(op.entry)
        if dn not in self.entries:
            return self._result(pureldap.LDAPModifyDNResponse,
                                ldaperrors.LDAPNoSuchObject.resultCode)
        rdn = self._parseDN(op.newrdn)
        if op.newSuperior is None:
            superior = dn.parent()
        else:
            superior = self._parseDN(op.newSuperior)
        if rdn is None or superior is None or len(rdn) != 1:
            return self._result(pureldap.LDAPModifyDNResponse,
                                ldaperrors.LDAPInvalidDNSyntax.resultCode)
        if superior not in self.entries:
            return self._result(pureldap.LDAPModifyDNResponse,
                                ldaperrors.LDAPNoSuchObject.resultCode,
                                'new superior does not exist')
        newDN = superior.child(rdn.split()[0])
        if newDN in self.entries:
            return self._result(pureldap.LDAPModifyDNResponse,
                                ldaperrors.LDAPEntryAlreadyExists.resultCode,
                                'entry exists')

        oldRDNType = dn.rdnType()
        for old in list(self.entries):
            if not dn.contains(old):
                continue
            e = self.entries.pop(old)
            e.dn = DistinguishedName(
                listOfRDNs=old.split()[:len(old) - len(dn)] + newDN.split())
            self.entries[e.dn] = e
            if old == dn and op.deleteoldrdn:
                e.set(oldRDNType, [])
            self._setNames(e)
        return self._result(pureldap.LDAPModifyDNResponse, ldaperrors.Success.resultCode)

    def _delete(self, op):
        dn = self._parseDN(op.value)
        if dn not in self.entries:
            return self._result(pureldap.LDAPDelResponse,
                                ldaperrors.LDAPNoSuchObject.resultCode)
        for other in self.entries:
            if dn.isAncestorOf(other):
                return self._result(pureldap.LDAPDelResponse,
                                    ldaperrors.LDAPNotAllowedOnNonLeaf.resultCode)
        del self.entries[dn]
        return self._result(pureldap.LDAPDelResponse, ldaperrors.Success.resultCode)

    # Searching

    def _matches(self, e, f):
        if isinstance(f, pureldap.LDAPFilter_and):
            for subfilter in f:
                if not self._matches(e, subfilter):
                    return False
            return True
        elif isinstance(f, pureldap.LDAPFilter_or):
            for subfilter in f:
                if self._matches(e, subfilter):
                    return True
            return False
        elif isinstance(f, pureldap.LDAPFilter_not):
            return not self._matches(e, f.value)
        elif isinstance(f, pureldap.LDAPFilter_present):
            return e.has(_text(f.value))
        elif isinstance(f, pureldap.LDAPFilter_equalityMatch):
            key = _text(f.attributeDesc.value)
            value = _text(f.assertionValue.value)
            if key.lower() == 'distinguishedname':
                return self._parseDN(value) == e.dn
            for x in e.get(key):
                if isinstance(x, str) and x.lower() == value.lower():
                    return True
            return False
        else:
            raise NotImplementedError('%s cannot evaluate %r' % (
                self.__class__.__name__, f))

    def _inScope(self, base, scope, dn):
        if scope == pureldap.LDAP_SCOPE_baseObject:
            return dn == base
        elif scope == pureldap.LDAP_SCOPE_singleLevel:
            return len(dn) > 0 and dn.parent() == base
        else:
            return base.contains(dn)

    def _resultEntry(self, e, attributes):
        attributes = [_text(x) for x in attributes]
        everything = not attributes or '*' in attributes
        wanted = [x.lower() for x in attributes]
        r = []
        for key, values in e.items():
            if key.lower() in HIDDEN_ATTRIBUTES:
                continue
            if '1.1' in wanted:
                continue
            if everything or key.lower() in wanted:
                r.append((key, values))
        return pureldap.LDAPSearchResultEntry(objectName=e.dn.getText(), attributes=r)

    def _search(self, op):
        base = self._parseDN(op.baseObject)
        if base is None:
            return [searchResultDone(ldaperrors.LDAPInvalidDNSyntax.resultCode)]

        if not len(base) and op.scope == pureldap.LDAP_SCOPE_baseObject:
            candidates = [self.rootDSE]
        elif base not in self.entries:
            return [searchResultDone(ldaperrors.LDAPNoSuchObject.resultCode,
                                     'no such object')]
        else:
            candidates = [self.entries[x] for x in sorted(
                self.entries, key=lambda dn: dn.getText().lower())]

        r = []
        for e in candidates:
            if not self._inScope(base, op.scope, e.dn):
                continue
            if not self._matches(e, op.filter):
                continue
            r.append(self._resultEntry(e, op.attributes))
        r.append(searchResultDone())
        return r
