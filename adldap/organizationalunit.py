from ldaptor.protocols import pureldap
from ldaptor.protocols.ldap import ldaperrors
from zope.interface import implementer

from adldap import errors, interfaces
from adldap.entry import DirectoryObject


@implementer(interfaces.IOrganizationalUnit)
class OrganizationalUnit(DirectoryObject):
    """An organizationalUnit object."""

    def _cbIsEmpty(self, results):
        if not results:
            raise errors.NotFoundError('organizationalUnit', self.dn.getText())
        # The subtree search always returns the unit itself.
        return len(results) == 1

    def _ebIsEmpty(self, fail):
        fail.trap(ldaperrors.LDAPNoSuchObject)
        raise errors.NotFoundError('organizationalUnit', self.dn.getText())

    def isEmpty(self):
        d = self.client.search(
            baseDN=self.dn,
            scope=pureldap.LDAP_SCOPE_wholeSubtree,
            attributes=None)
        d.addCallback(self._cbIsEmpty)
        d.addErrback(self._ebIsEmpty)
        return d

    def _cbDelete(self, empty):
        if not empty:
            raise errors.NotEmptyError(self.dn.getText())
        return self.entry.delete()

    def delete(self):
        """Delete the organizational unit, refusing when it has children."""
        self.entry._checkState()
        d = self.isEmpty()
        d.addCallback(self._cbDelete)
        return self._chain(d)

    def rename(self, newDN):
        """
        Move and/or rename the unit to C{newDN}.

        The new parent has to exist already.
        """
        return self.changeDN(newDN)
