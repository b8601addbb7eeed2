"""
Errors raised by the directory object layer.

Failures reported by the server itself are not translated: they are
raised as the matching ldaptor.protocols.ldap.ldaperrors exception,
with the operation and target DN prepended to the server's message.
"""


class ADLDAPError(Exception):
    """Directory operation failed"""

    def __str__(self):
        return self.__doc__


class InvalidDistinguishedName(ADLDAPError):
    """Invalid distinguished name"""

    def __init__(self, text, reason=None):
        ADLDAPError.__init__(self)
        self.text = text
        self.reason = reason

    def __str__(self):
        if self.reason is None:
            return '%s %r.' % (self.__doc__, self.text)
        return '%s %r: %s.' % (self.__doc__, self.text, self.reason)


class EmptyDistinguishedNameError(ADLDAPError):
    """Operation is not defined on the empty distinguished name"""

    def __init__(self, operation):
        ADLDAPError.__init__(self)
        self.operation = operation

    def __str__(self):
        return 'unable to get %s of the empty distinguished name' % self.operation


class DirectoryConnectionError(ADLDAPError):
    """Unable to connect to the directory server"""

    def __init__(self, url, reason):
        ADLDAPError.__init__(self)
        self.url = url
        self.reason = reason

    def __str__(self):
        return 'unable to connect to %s: %s' % (self.url, self.reason)


class BindError(ADLDAPError):
    """Unable to bind to the directory server"""

    def __init__(self, identity, reason):
        ADLDAPError.__init__(self)
        self.identity = identity
        self.reason = reason

    def __str__(self):
        return 'unable to bind as %r: %s' % (self.identity, self.reason)


class SearchBaseUndetectableError(ADLDAPError):
    """Search base not set and LDAP search base auto-detection failed"""


class NotFoundError(ADLDAPError):
    """No entry returned"""

    def __init__(self, objectClass, name):
        ADLDAPError.__init__(self)
        self.objectClass = objectClass
        self.name = name

    def __str__(self):
        return 'no entry returned for %s object "%s"' % (self.objectClass, self.name)


class AmbiguousResultError(ADLDAPError):
    """Too many results returned"""

    def __init__(self, objectClass, name, count):
        ADLDAPError.__init__(self)
        self.objectClass = objectClass
        self.name = name
        self.count = count

    def __str__(self):
        return 'too many results (%d) returned for %s object "%s", expected 1' % (
            self.count, self.objectClass, self.name)


class AlreadyExistsError(ADLDAPError):
    """Object already exists"""

    def __init__(self, objectClass, name):
        ADLDAPError.__init__(self)
        self.objectClass = objectClass
        self.name = name

    def __str__(self):
        return '%s object "%s" already exists' % (self.objectClass, self.name)


class AlreadyHasValueError(ADLDAPError):
    """Attribute already has the value"""

    def __init__(self, dn, attributeType, values):
        ADLDAPError.__init__(self)
        self.dn = dn
        self.attributeType = attributeType
        self.values = values

    def __str__(self):
        return 'attribute %s of "%s" already has value %s' % (
            self.attributeType, self.dn, ', '.join(self.values))


class NotEmptyError(ADLDAPError):
    """Organizational unit is not empty"""

    def __init__(self, dn):
        ADLDAPError.__init__(self)
        self.dn = dn

    def __str__(self):
        return 'unable to delete "%s": organizational unit is not empty' % (self.dn,)


class ContainerNotFoundError(ADLDAPError):
    """Container does not exist"""

    def __init__(self, dn, container):
        ADLDAPError.__init__(self)
        self.dn = dn
        self.container = container

    def __str__(self):
        return 'cannot place object "%s" in non-existent or non-container object "%s"' % (
            self.dn, self.container)


class InvalidOrganizationalUnitError(ADLDAPError):
    """Invalid organizational unit"""

    def __init__(self, dn, reason):
        ADLDAPError.__init__(self)
        self.dn = dn
        self.reason = reason

    def __str__(self):
        return 'organizational unit "%s" %s' % (self.dn, self.reason)


class ObjectDeletedError(ADLDAPError):
    """The directory object has already been removed, unable to perform operations on it"""


class InvalidServicePrincipalError(ADLDAPError):
    """Invalid service principal name"""

    def __init__(self, value, reason):
        ADLDAPError.__init__(self)
        self.value = value
        self.reason = reason

    def __str__(self):
        return '%s "%s": %s' % (self.__doc__.lower(), self.value, self.reason)


class AttributeNotLoadedError(ADLDAPError):
    """Attribute was never loaded"""

    def __init__(self, dn, attributeType):
        ADLDAPError.__init__(self)
        self.dn = dn
        self.attributeType = attributeType

    def __str__(self):
        return 'attribute %s of "%s" was never loaded' % (self.attributeType, self.dn)
