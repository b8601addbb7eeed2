"""Active Directory objects over LDAP, for Twisted"""
__version__ = "0.4.0"

__title__ = "adldap"
__description__ = "Active Directory users, computers and organizational units over LDAP"

__license__ = "MIT"
__author__ = "The adldap developers"
__copyright__ = "Copyright (c) 2019-2026 {}".format(__author__)
