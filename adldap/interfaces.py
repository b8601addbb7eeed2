from zope.interface import Attribute, Interface


class IADLDAPConfig(Interface):
    """Connection settings for one directory."""

    debug = Attribute("Log every search request when true.")

    def getURL():
        """
        Get the directory server URL, C{ldap://...} or C{ldaps://...}.

        Raises adldap.config.MissingURLError if none is configured.
        """

    def getEndpointString():
        """
        Get the Twisted client endpoint description for the server.

        Raises adldap.config.InvalidURLError for unsupported URLs.
        """

    def getSearchBase():
        """
        Get the search base, as a DistinguishedName, or None when it
        is to be detected from the root DSE.
        """

    def copy(**kw):
        """
        Make a copy of this configuration, overriding certain aspects
        of it.
        """


class IDirectoryEntry(Interface):
    """
    One directory object with a partial, lazily filled attribute cache.

    Attribute names are case insensitive. For every attribute the cache
    is either known, meaning the attribute was requested from the server
    and the cached values (possibly none) are what the server returned,
    or unknown.
    """

    dn = Attribute("Distinguished name of the object, a DistinguishedName.")
    client = Attribute("The DirectoryClient this object belongs to.")

    def refresh():
        """
        Fetch the tracked attributes again.

        Returns a Deferred firing with this entry.
        """

    def ensureLoaded(*names):
        """
        Make sure the given attributes are known, fetching them in one
        request if needed.
        """

    def getAttributeValues(name):
        """
        Get the values of an attribute, a possibly empty list.

        An attribute that is not known yet is added to the requested
        attributes and loaded first. Returns a Deferred.
        """

    def getAttributeValue(name):
        """Get the first value of an attribute, or None. Returns a Deferred."""

    def hasAttributeWithValues(name, values):
        """
        Are all of C{values} among the values of C{name}. Returns a
        Deferred.
        """

    def getKnownAttributeValues(name):
        """
        Get the cached values of a known attribute, without fetching.

        Raises AttributeNotLoadedError for an unknown attribute.
        """

    def getKnownAttributeValue(name):
        """Get the first cached value of a known attribute, or None."""

    def hasKnownAttributeWithValues(name, values):
        """Are all of C{values} among the cached values of known C{name}."""

    def modify(modifications):
        """
        Send a list of ldaptor.delta modifications in one request.
        """

    def updateAttributes(attributes):
        """
        Replace the attributes whose values differ from the mapping of
        attribute name to list of values. Sends nothing when nothing
        differs.
        """

    def changeDN(newDN):
        """
        Move and/or rename the object.
        """

    def move(container):
        """Move the object into another container, keeping its RDN."""

    def rename(newRDN):
        """Rename the object within its container."""

    def delete():
        """
        Delete the object. Nothing can be done with it afterwards.
        """

    def addAttributeValue(name, values):
        """Add the values of C{name} that are not present yet."""

    def removeAttributeValue(name, values):
        """Remove the values of C{name} that are present."""


class IDirectoryObject(Interface):
    """The operations shared by all object kinds."""

    dn = Attribute("Distinguished name of the object.")
    entry = Attribute("The wrapped IDirectoryEntry.")

    def refresh():
        """Fetch the tracked attributes again."""

    def getAttributeValues(name):
        """Get the values of an attribute, loading it if needed."""

    def getAttributeValue(name):
        """Get the first value of an attribute, or None."""

    def hasAttributeWithValues(name, values):
        """Are all of C{values} among the values of C{name}."""

    def getKnownAttributeValues(name):
        """Get the cached values of a known attribute."""

    def getKnownAttributeValue(name):
        """Get the first cached value of a known attribute, or None."""

    def updateAttributes(attributes):
        """Replace the attributes whose values differ."""

    def addAttributeValue(name, values):
        """Add the values of C{name} that are not present yet."""

    def removeAttributeValue(name, values):
        """Remove the values of C{name} that are present."""

    def move(container):
        """Move the object into another container."""

    def rename(newRDN):
        """Rename the object within its container."""

    def changeDN(newDN):
        """Move and/or rename the object."""

    def delete():
        """Delete the object."""


class IAccount(IDirectoryObject):
    """A user or computer account."""

    def getSamAccountName():
        """Get the sAMAccountName of the account."""

    def getUserAccountControl():
        """
        Get the userAccountControl flags, loading them if needed.

        Returns a Deferred firing with an integer.
        """

    def setUserAccountControl(value):
        """Write the whole userAccountControl bitmask."""

    def addUACFlag(flags):
        """Set C{flags} in userAccountControl, keeping the others."""

    def removeUACFlag(flags):
        """Clear C{flags} in userAccountControl, keeping the others."""

    def setPassword(password):
        """Replace the password of the account."""

    def enable():
        """Clear the ACCOUNTDISABLE flag."""

    def disable():
        """Set the ACCOUNTDISABLE flag."""

    def getServicePrincipals():
        """Get the servicePrincipalName values of the account."""

    def addServicePrincipal(spn):
        """Add a servicePrincipalName value."""

    def removeServicePrincipal(spn):
        """Remove a servicePrincipalName value if present."""


class IOrganizationalUnit(IDirectoryObject):
    """An organizationalUnit object."""

    def isEmpty():
        """
        Does the organizational unit have no objects below it.

        Returns a Deferred firing with a boolean.
        """

    def rename(newDN):
        """Move and/or rename the organizational unit."""
