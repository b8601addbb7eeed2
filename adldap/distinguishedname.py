"""
Distinguished names.

Builds on ldaptor.protocols.ldap.distinguishedname, adding what Active
Directory objects need on top of it: RFC 4514 grammar checks when
parsing, type-only case folding in comparisons and navigation that
refuses to go above the empty DN.
"""

import re

from ldaptor.protocols.ldap import distinguishedname as ldapdn
from ldaptor.protocols.ldap.distinguishedname import _splitOnNotEscaped, escape

from adldap.errors import InvalidDistinguishedName, EmptyDistinguishedNameError

__all__ = [
    'AttributeTypeAndValue',
    'DistinguishedName',
    'RelativeDistinguishedName',
    'escape',
    'parse',
    'unescape',
]

hexDigits = '0123456789abcdefABCDEF'

attributeTypePattern = re.compile(r'^([A-Za-z][A-Za-z0-9-]*|[0-9]+(\.[0-9]+)*)$')


def _decodeHexPairs(pending, text):
    try:
        return bytes(pending).decode('utf-8')
    except UnicodeDecodeError:
        raise InvalidDistinguishedName(text, 'hex escapes are not valid UTF-8')


def unescape(text):
    """
    Undo RFC 4514 escaping.

    Runs of hex pairs (C{\\C3\\A9}) are decoded as UTF-8.

    @raise InvalidDistinguishedName: on a dangling backslash or a
    malformed hex escape.
    """
    r = ''
    pending = bytearray()
    s = text
    while s:
        if s[0] == '\\':
            if len(s) < 2:
                raise InvalidDistinguishedName(text, 'dangling escape character')
            if s[1] in hexDigits:
                if len(s) < 3 or s[2] not in hexDigits:
                    raise InvalidDistinguishedName(text, 'malformed hex escape')
                pending.append(int(s[1:3], 16))
                s = s[3:]
                continue
            c = s[1]
            s = s[2:]
        else:
            c = s[0]
            s = s[1:]
        if pending:
            r = r + _decodeHexPairs(pending, text)
            pending = bytearray()
        r = r + c

    if pending:
        r = r + _decodeHexPairs(pending, text)
    return r


def _stripUnescapedSpaces(s):
    s = s.lstrip(' ')
    while s.endswith(' ') and not s.endswith('\\ '):
        s = s[:-1]
    return s


def _avaKey(ava):
    return (ava.attributeType.lower(), ava.value)


class AttributeTypeAndValue(ldapdn.LDAPAttributeTypeAndValue):
    """
    One C{type=value} assertion of a relative distinguished name.

    Unlike the ldaptor original, values compare exactly.
    """

    def __init__(self, attributeType, value):
        ldapdn.LDAPAttributeTypeAndValue.__init__(
            self, attributeType=attributeType, value=value)

    @classmethod
    def fromText(cls, text):
        """Parse escaped C{type=value} text."""
        parts = _splitOnNotEscaped(text, '=')
        if len(parts) < 2:
            raise InvalidDistinguishedName(text, 'missing "="')
        attributeType = parts[0].strip()
        if not attributeTypePattern.match(attributeType):
            raise InvalidDistinguishedName(text, 'invalid attribute type')
        # Further unescaped "=" belong to the value.
        value = '='.join(parts[1:])
        return cls(attributeType, unescape(_stripUnescapedSpaces(value)))

    def __str__(self):
        return self.getText()

    def __hash__(self):
        return hash(_avaKey(self))

    def __eq__(self, other):
        if not isinstance(other, ldapdn.LDAPAttributeTypeAndValue):
            return NotImplemented
        return _avaKey(self) == _avaKey(other)

    def __ne__(self, other):
        return not (self == other)


class RelativeDistinguishedName(ldapdn.RelativeDistinguishedName):
    """LDAP Relative Distinguished Name, its AVAs compared in any order."""

    def __init__(self, magic=None, attributeTypesAndValues=None):
        if isinstance(magic, bytes):
            magic = magic.decode('utf-8')
        if isinstance(magic, str):
            if not magic.strip():
                raise InvalidDistinguishedName(magic, 'empty component')
            magic = [AttributeTypeAndValue.fromText(x)
                     for x in _splitOnNotEscaped(magic, '+')]
        ldapdn.RelativeDistinguishedName.__init__(
            self, magic, attributeTypesAndValues=attributeTypesAndValues)
        assert self.attributeTypesAndValues, 'an RDN needs at least one attribute'

    def __str__(self):
        return self.getText()

    def _key(self):
        return tuple(sorted(_avaKey(x) for x in self.attributeTypesAndValues))

    def __hash__(self):
        return hash(self._key())

    def __eq__(self, other):
        if not isinstance(other, RelativeDistinguishedName):
            return NotImplemented
        return self._key() == other._key()

    def __ne__(self, other):
        return not (self == other)


class DistinguishedName(ldapdn.DistinguishedName):
    """
    LDAP Distinguished Name.

    Accepts text, another DistinguishedName or a sequence of
    RelativeDistinguishedNames (or their text). With no argument at all
    it is the empty DN.
    """

    def __init__(self, magic=None, listOfRDNs=None):
        if magic is not None:
            assert listOfRDNs is None
            if isinstance(magic, bytes):
                magic = magic.decode('utf-8')
            if isinstance(magic, str):
                listOfRDNs = self._parse(magic)
            elif isinstance(magic, ldapdn.DistinguishedName):
                listOfRDNs = magic.split()
            else:
                listOfRDNs = magic

        if listOfRDNs is None:
            listOfRDNs = ()
        ldapdn.DistinguishedName.__init__(self, listOfRDNs=[
            x if isinstance(x, RelativeDistinguishedName)
            else RelativeDistinguishedName(x)
            for x in listOfRDNs])

    @staticmethod
    def _parse(text):
        rdns = []
        for component in _splitOnNotEscaped(text, ','):
            if not component.strip():
                raise InvalidDistinguishedName(text, 'empty component')
            try:
                rdns.append(RelativeDistinguishedName(component))
            except InvalidDistinguishedName as e:
                raise InvalidDistinguishedName(text, e.reason)
        return rdns

    def __str__(self):
        return self.getText()

    def parent(self):
        """
        Get the distinguished name of the containing object.

        A single component DN has the empty DN as parent; the empty DN has
        no parent at all.
        """
        if not self.listOfRDNs:
            raise EmptyDistinguishedNameError('parent')
        return DistinguishedName(listOfRDNs=self.listOfRDNs[1:])

    up = parent

    def rdn(self):
        """The leaf component, as a DN of its own."""
        if not self.listOfRDNs:
            raise EmptyDistinguishedNameError('relative distinguished name')
        return DistinguishedName(listOfRDNs=self.listOfRDNs[:1])

    def rdnType(self):
        if not self.listOfRDNs:
            raise EmptyDistinguishedNameError('relative distinguished name')
        return self.listOfRDNs[0].split()[0].attributeType

    def name(self):
        if not self.listOfRDNs:
            raise EmptyDistinguishedNameError('name')
        return self.listOfRDNs[0].split()[0].value

    def child(self, rdn):
        """Get the DN of the object named C{rdn} directly below this one."""
        if isinstance(rdn, ldapdn.DistinguishedName):
            assert len(rdn.split()) == 1, 'expected a single component, got %r' % rdn
            rdn = rdn.split()[0]
        return DistinguishedName(
            listOfRDNs=(RelativeDistinguishedName(rdn),) + self.listOfRDNs)

    def isAncestorOf(self, other):
        """Is C{other} strictly below this DN in the tree."""
        if not isinstance(other, DistinguishedName):
            other = DistinguishedName(other)
        mine = self.split()
        its = other.split()
        if len(mine) >= len(its):
            return False
        return its[len(its) - len(mine):] == mine

    def contains(self, other):
        """Does the tree rooted at DN contain or equal the other DN."""
        if not isinstance(other, DistinguishedName):
            other = DistinguishedName(other)
        return self == other or self.isAncestorOf(other)

    def __len__(self):
        return len(self.listOfRDNs)

    def __hash__(self):
        return hash(self.listOfRDNs)

    def __eq__(self, other):
        if not isinstance(other, DistinguishedName):
            return NotImplemented
        return self.split() == other.split()

    def __ne__(self, other):
        return not (self == other)


def parse(text):
    """
    Parse the textual form of a distinguished name.

    @raise InvalidDistinguishedName: when C{text} is not a valid DN.
    """
    return DistinguishedName(text)
