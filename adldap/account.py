from ldaptor import delta
from twisted.python import log
from zope.interface import implementer

from adldap import interfaces, uac
from adldap.distinguishedname import AttributeTypeAndValue, RelativeDistinguishedName
from adldap.entry import DirectoryObject


def encodePassword(password):
    """
    Encode a password for the unicodePwd attribute.

    Active Directory wants the password in double quotes, as UTF-16LE.
    """
    return ('"%s"' % password).encode('utf-16-le')


@implementer(interfaces.IAccount)
class Account(DirectoryObject):
    """
    A user or computer account.

    The userAccountControl helpers read the cached bitmask, loading it
    when needed, and write back the whole value. Two writers changing
    different flags of the same account at the same time can lose one
    of the changes; the last write wins.
    """

    def getSamAccountName(self):
        return self.entry.getKnownAttributeValue('sAMAccountName')

    def _cbUserAccountControl(self, entry):
        value = entry.getKnownAttributeValue('userAccountControl')
        if value is None:
            return 0
        return int(value)

    def getUserAccountControl(self):
        d = self.entry.ensureLoaded('userAccountControl')
        d.addCallback(self._cbUserAccountControl)
        return d

    def setUserAccountControl(self, value):
        log.msg('userAccountControl of %s: %s' % (
            self.dn.getText(), ' | '.join(uac.flagNames(value))))
        return self.updateAttribute('userAccountControl', [str(value)])

    def _cbAddUACFlag(self, value, flags):
        return self.setUserAccountControl(value | flags)

    def addUACFlag(self, flags):
        d = self.getUserAccountControl()
        d.addCallback(self._cbAddUACFlag, flags)
        return d

    def _cbRemoveUACFlag(self, value, flags):
        return self.setUserAccountControl(value & ~flags)

    def removeUACFlag(self, flags):
        d = self.getUserAccountControl()
        d.addCallback(self._cbRemoveUACFlag, flags)
        return d

    def hasUACFlag(self, flag):
        d = self.getUserAccountControl()
        d.addCallback(uac.isSet, flag)
        return d

    def enable(self):
        return self.removeUACFlag(uac.ACCOUNTDISABLE)

    def disable(self):
        return self.addUACFlag(uac.ACCOUNTDISABLE)

    def _cbIsEnabled(self, disabled):
        return not disabled

    def isEnabled(self):
        d = self.hasUACFlag(uac.ACCOUNTDISABLE)
        d.addCallback(self._cbIsEnabled)
        return d

    def setPasswordNeverExpires(self, neverExpires):
        if neverExpires:
            return self.addUACFlag(uac.DONT_EXPIRE_PASSWORD)
        return self.removeUACFlag(uac.DONT_EXPIRE_PASSWORD)

    def passwordNeverExpires(self):
        return self.hasUACFlag(uac.DONT_EXPIRE_PASSWORD)

    def setPassword(self, password):
        """
        Replace the password of the account.

        Always sends exactly one modify request; the server does not let
        anyone read unicodePwd back, so there is nothing to compare with.
        """
        log.msg('setting password of %s' % self.dn.getText())
        d = self.entry.modify([
            delta.Replace('unicodePwd', [encodePassword(password)]),
        ])
        return self._chain(d)

    def rename(self, newName):
        """Rename the account to C{CN=newName} within its container."""
        rdn = RelativeDistinguishedName([AttributeTypeAndValue('CN', newName)])
        return self._chain(self.entry.rename(rdn))

    def getServicePrincipals(self):
        return self.entry.getAttributeValues('servicePrincipalName')

    def hasServicePrincipal(self, spn):
        return self.entry.hasAttributeWithValues('servicePrincipalName', [spn])

    def addServicePrincipal(self, spn):
        return self._chain(self.entry.addAttributeValue('servicePrincipalName', [spn]))

    def removeServicePrincipal(self, spn):
        return self._chain(self.entry.removeAttributeValue('servicePrincipalName', [spn]))
