"""
Flags of the userAccountControl attribute.

See "How to use the UserAccountControl flags" in the Windows Server
documentation.
"""

SCRIPT = 0x0001
ACCOUNTDISABLE = 0x0002
HOMEDIR_REQUIRED = 0x0008
LOCKOUT = 0x0010
PASSWD_NOTREQD = 0x0020
PASSWD_CANT_CHANGE = 0x0040
ENCRYPTED_TEXT_PWD_ALLOWED = 0x0080
TEMP_DUPLICATE_ACCOUNT = 0x0100
NORMAL_ACCOUNT = 0x0200
INTERDOMAIN_TRUST_ACCOUNT = 0x0800
WORKSTATION_TRUST_ACCOUNT = 0x1000
SERVER_TRUST_ACCOUNT = 0x2000
DONT_EXPIRE_PASSWORD = 0x10000
MNS_LOGON_ACCOUNT = 0x20000
SMARTCARD_REQUIRED = 0x40000
TRUSTED_FOR_DELEGATION = 0x80000
NOT_DELEGATED = 0x100000
USE_DES_KEY_ONLY = 0x200000
DONT_REQ_PREAUTH = 0x400000
PASSWORD_EXPIRED = 0x800000
TRUSTED_TO_AUTH_FOR_DELEGATION = 0x1000000
PARTIAL_SECRETS_ACCOUNT = 0x04000000

FLAGS = [
    ('SCRIPT', SCRIPT),
    ('ACCOUNTDISABLE', ACCOUNTDISABLE),
    ('HOMEDIR_REQUIRED', HOMEDIR_REQUIRED),
    ('LOCKOUT', LOCKOUT),
    ('PASSWD_NOTREQD', PASSWD_NOTREQD),
    ('PASSWD_CANT_CHANGE', PASSWD_CANT_CHANGE),
    ('ENCRYPTED_TEXT_PWD_ALLOWED', ENCRYPTED_TEXT_PWD_ALLOWED),
    ('TEMP_DUPLICATE_ACCOUNT', TEMP_DUPLICATE_ACCOUNT),
    ('NORMAL_ACCOUNT', NORMAL_ACCOUNT),
    ('INTERDOMAIN_TRUST_ACCOUNT', INTERDOMAIN_TRUST_ACCOUNT),
    ('WORKSTATION_TRUST_ACCOUNT', WORKSTATION_TRUST_ACCOUNT),
    ('SERVER_TRUST_ACCOUNT', SERVER_TRUST_ACCOUNT),
    ('DONT_EXPIRE_PASSWORD', DONT_EXPIRE_PASSWORD),
    ('MNS_LOGON_ACCOUNT', MNS_LOGON_ACCOUNT),
    ('SMARTCARD_REQUIRED', SMARTCARD_REQUIRED),
    ('TRUSTED_FOR_DELEGATION', TRUSTED_FOR_DELEGATION),
    ('NOT_DELEGATED', NOT_DELEGATED),
    ('USE_DES_KEY_ONLY', USE_DES_KEY_ONLY),
    ('DONT_REQ_PREAUTH', DONT_REQ_PREAUTH),
    ('PASSWORD_EXPIRED', PASSWORD_EXPIRED),
    ('TRUSTED_TO_AUTH_FOR_DELEGATION', TRUSTED_TO_AUTH_FOR_DELEGATION),
    ('PARTIAL_SECRETS_ACCOUNT', PARTIAL_SECRETS_ACCOUNT),
]

# Initial flags of newly created accounts.
NEW_USER = NORMAL_ACCOUNT | ACCOUNTDISABLE
NEW_COMPUTER = WORKSTATION_TRUST_ACCOUNT | PASSWD_NOTREQD


def isSet(value, flag):
    """Are all bits of C{flag} set in C{value}."""
    return value & flag == flag


def flagNames(value):
    return [name for name, flag in FLAGS if isSet(value, flag)]
