from twisted.internet import defer
from zope.interface import implementer

from ldaptor import delta

from adldap import errors, interfaces
from adldap.distinguishedname import DistinguishedName, RelativeDistinguishedName

# Attribute lists that name no real attribute.
PSEUDO_ATTRIBUTES = ('1.1', '*', '+')


def valueList(values):
    """Normalize a single value or a sequence of values to a list of text."""
    if isinstance(values, (str, bytes, int)):
        values = [values]
    r = []
    for value in values:
        if not isinstance(value, (str, bytes)):
            value = str(value)
        if value not in r:
            r.append(value)
    return r


@implementer(interfaces.IDirectoryEntry)
class DirectoryEntry:
    _state = 'invalid'
    """

    State of a DirectoryEntry is one of:

    invalid - object not initialized yet

    ready - normal

    deleted - object has been deleted

    """

    def __init__(self, client, dn, attributes=None, requestedAttributes=()):
        """

        Initialize the object.

        @param client: The DirectoryClient this object belongs to.

        @param dn: Distinguished Name of the object.

        @param attributes: Attributes of the object as returned by the
        server. A dictionary of attribute types to list of attribute
        values.

        @param requestedAttributes: The attribute names that were
        requested when the object was fetched. They are the names
        fetched again on refresh, and their cached values are
        authoritative even when the server returned none.

        """
        self.client = client
        self.dn = DistinguishedName(dn)
        self._setAttributes(attributes or {}, requestedAttributes)
        self._state = 'ready'

    def _setAttributes(self, attributes, requestedAttributes):
        self._values = {}
        for key, values in attributes.items():
            self._values.setdefault(key.lower(), []).extend(valueList(values))

        self._requested = []
        for name in requestedAttributes:
            if name in PSEUDO_ATTRIBUTES:
                continue
            if name.lower() not in [x.lower() for x in self._requested]:
                self._requested.append(name)

        self._known = set(x.lower() for x in self._requested)
        self._known.update(self._values.keys())

    def _checkState(self):
        if self._state != 'ready':
            if self._state == 'deleted':
                raise errors.ObjectDeletedError
            else:
                raise AssertionError(
                    "State is %s while expecting %s" % (
                        repr(self._state), repr('ready')))

    def isKnown(self, name):
        return name.lower() in self._known

    def getRequestedAttributes(self):
        return list(self._requested)

    def getKnownAttributeValues(self, name):
        """
        Get the cached values of an attribute without any fetching.

        @raise AttributeNotLoadedError: when C{name} was never loaded.
        """
        if not self.isKnown(name):
            raise errors.AttributeNotLoadedError(self.dn.getText(), name)
        return list(self._values.get(name.lower(), []))

    def getKnownAttributeValue(self, name):
        values = self.getKnownAttributeValues(name)
        if not values:
            return None
        return values[0]

    def hasKnownAttributeWithValues(self, name, values):
        present = self.getKnownAttributeValues(name)
        for value in valueList(values):
            if value not in present:
                return False
        return True

    def _cbGetAttributeValues(self, _, name):
        return self.getKnownAttributeValues(name)

    def getAttributeValues(self, name):
        """
        Get the values of an attribute, loading it first when it was
        not requested yet.

        @return: a Deferred that will fire with a list of values.
        """
        d = self.ensureLoaded(name)
        d.addCallback(self._cbGetAttributeValues, name)
        return d

    def _cbGetAttributeValue(self, _, name):
        return self.getKnownAttributeValue(name)

    def getAttributeValue(self, name):
        d = self.ensureLoaded(name)
        d.addCallback(self._cbGetAttributeValue, name)
        return d

    def _cbHasAttributeWithValues(self, _, name, values):
        return self.hasKnownAttributeWithValues(name, values)

    def hasAttributeWithValues(self, name, values):
        d = self.ensureLoaded(name)
        d.addCallback(self._cbHasAttributeWithValues, name, values)
        return d

    def _cbFetch(self, fetched, requestedAttributes):
        self._setAttributes(fetched._values, requestedAttributes)
        return self

    def _fetch(self, requestedAttributes):
        d = self.client.getObjectByDN(self.dn, attributes=requestedAttributes)
        d.addCallback(self._cbFetch, requestedAttributes)
        return d

    def refresh(self):
        self._checkState()
        return self._fetch(self._requested)

    def ensureLoaded(self, *names):
        self._checkState()
        missing = [x for x in names if not self.isKnown(x)]
        if not missing:
            return defer.succeed(self)
        return self._fetch(self._requested + missing)

    def _cbModified(self, msg, modifications):
        for m in modifications:
            key = m.key.lower()
            if key not in self._known:
                continue
            values = self._values.setdefault(key, [])
            if isinstance(m, delta.Replace):
                values[:] = valueList(list(m))
            elif isinstance(m, delta.Add):
                for value in valueList(list(m)):
                    if value not in values:
                        values.append(value)
            elif isinstance(m, delta.Delete):
                if len(m):
                    removed = valueList(list(m))
                    values[:] = [x for x in values if x not in removed]
                else:
                    del values[:]
        return self

    def modify(self, modifications):
        self._checkState()
        modifications = list(modifications)
        d = self.client.modify(self.dn, modifications)
        d.addCallback(self._cbModified, modifications)
        return d

    def _cbUpdateAttributes(self, _, attributes):
        modifications = []
        for name in sorted(attributes):
            values = valueList(attributes[name])
            if set(values) != set(self.getKnownAttributeValues(name)):
                modifications.append(delta.Replace(name, values))
        if not modifications:
            return self
        return self.modify(modifications)

    def updateAttributes(self, attributes):
        self._checkState()
        d = self.ensureLoaded(*attributes.keys())
        d.addCallback(self._cbUpdateAttributes, attributes)
        return d

    def updateAttribute(self, name, values):
        return self.updateAttributes({name: values})

    def _cbAddAttributeValue(self, _, name, values):
        present = self.getKnownAttributeValues(name)
        missing = [x for x in values if x not in present]
        if not missing:
            raise errors.AlreadyHasValueError(self.dn.getText(), name, values)
        return self.modify([delta.Add(name, missing)])

    def addAttributeValue(self, name, values):
        self._checkState()
        values = valueList(values)
        d = self.ensureLoaded(name)
        d.addCallback(self._cbAddAttributeValue, name, values)
        return d

    def _cbRemoveAttributeValue(self, _, name, values):
        present = self.getKnownAttributeValues(name)
        found = [x for x in values if x in present]
        if not found:
            return self
        return self.modify([delta.Delete(name, found)])

    def removeAttributeValue(self, name, values):
        self._checkState()
        values = valueList(values)
        d = self.ensureLoaded(name)
        d.addCallback(self._cbRemoveAttributeValue, name, values)
        return d

    def _cbChangeDNDone(self, msg, newDN):
        self.dn = newDN
        patched = {
            'distinguishedname': newDN.getText(),
            'name': newDN.name(),
            newDN.rdnType().lower(): newDN.name(),
        }
        for key, value in patched.items():
            if key in self._known:
                self._values[key] = [value]
        return self

    def _modifyDN(self, newDN, newSuperior):
        d = self.client.modifyDN(self.dn, newDN.split()[0], newSuperior)
        d.addCallback(self._cbChangeDNDone, newDN)
        return d

    def _cbChangeDNContainer(self, exists, newDN, newParent):
        if not exists:
            raise errors.ContainerNotFoundError(newDN.getText(), newParent.getText())
        return self._modifyDN(newDN, newParent)

    def _cbChangeDNTarget(self, exists, newDN):
        if exists:
            raise errors.AlreadyExistsError('directory', newDN.getText())

        newParent = newDN.parent()
        if newParent == self.dn.parent():
            return self._modifyDN(newDN, None)

        d = self.client.containerExists(newParent)
        d.addCallback(self._cbChangeDNContainer, newDN, newParent)
        return d

    def changeDN(self, newDN):
        """
        Move and/or rename the object in one modify-DN request.

        Nothing is sent when C{newDN} is the current DN. The new superior
        is only sent, after checking it is a container, when the parent
        changes.
        """
        self._checkState()
        newDN = DistinguishedName(newDN)
        if newDN == self.dn:
            return defer.succeed(self)

        d = self.client.objectExists(newDN.getText())
        d.addCallback(self._cbChangeDNTarget, newDN)
        return d

    def move(self, container):
        self._checkState()
        return self.changeDN(DistinguishedName(container).child(self.dn.split()[0]))

    def rename(self, newRDN):
        self._checkState()
        if isinstance(newRDN, DistinguishedName):
            newRDN = newRDN.split()[0]
        return self.changeDN(self.dn.parent().child(RelativeDistinguishedName(newRDN)))

    def _cbDeleteDone(self, msg):
        self._state = 'deleted'
        return self

    def delete(self):
        self._checkState()
        d = self.client.delete(self.dn)
        d.addCallback(self._cbDeleteDone)
        return d

    def parentDN(self):
        return self.dn.parent()

    def rdn(self):
        return self.dn.rdn()

    def __repr__(self):
        x = {}
        for key in sorted(self._values):
            x[key] = self._values[key]
        return (self.__class__.__name__
                + '(dn=%r, attributes=%r)' % (self.dn.getText(), x))


def _returnObject(_, o):
    return o


@implementer(interfaces.IDirectoryObject)
class DirectoryObject:
    """
    Operations common to all object kinds, carried out by the wrapped
    DirectoryEntry.

    Deferreds returned here fire with the wrapper, not the entry.
    """

    def __init__(self, entry):
        self.entry = entry

    @property
    def dn(self):
        return self.entry.dn

    @property
    def client(self):
        return self.entry.client

    def _chain(self, d):
        d.addCallback(_returnObject, self)
        return d

    def refresh(self):
        return self._chain(self.entry.refresh())

    def ensureLoaded(self, *names):
        return self._chain(self.entry.ensureLoaded(*names))

    def getAttributeValues(self, name):
        return self.entry.getAttributeValues(name)

    def getAttributeValue(self, name):
        return self.entry.getAttributeValue(name)

    def hasAttributeWithValues(self, name, values):
        return self.entry.hasAttributeWithValues(name, values)

    def getKnownAttributeValues(self, name):
        return self.entry.getKnownAttributeValues(name)

    def getKnownAttributeValue(self, name):
        return self.entry.getKnownAttributeValue(name)

    def updateAttributes(self, attributes):
        return self._chain(self.entry.updateAttributes(attributes))

    def updateAttribute(self, name, values):
        return self._chain(self.entry.updateAttribute(name, values))

    def addAttributeValue(self, name, values):
        return self._chain(self.entry.addAttributeValue(name, values))

    def removeAttributeValue(self, name, values):
        return self._chain(self.entry.removeAttributeValue(name, values))

    def move(self, container):
        return self._chain(self.entry.move(container))

    def rename(self, newRDN):
        return self._chain(self.entry.rename(newRDN))

    def changeDN(self, newDN):
        return self._chain(self.entry.changeDN(newDN))

    def delete(self):
        return self._chain(self.entry.delete())

    def parentDN(self):
        return self.entry.parentDN()

    def __repr__(self):
        return '%s(%r)' % (self.__class__.__name__, self.entry)
