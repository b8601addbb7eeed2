"""
Test cases for adldap.client module.
"""

from twisted.internet import defer, error
from twisted.python import failure, log
from twisted.trial import unittest

from ldaptor import delta, ldapfilter
from ldaptor.protocols import pureber, pureldap
from ldaptor.protocols.ldap import ldaperrors

from adldap import client, config, errors, uac
from adldap.account import Account
from adldap.distinguishedname import DistinguishedName
from adldap.organizationalunit import OrganizationalUnit
from adldap.testutil import (
    FakeDirectory,
    LDAPClientTestDriver,
    modifications,
    searchResultDone,
    searchResultEntry,
)

BASE = 'dc=example,dc=com'


def searchRequest(filterObject,
                  attributes=('1.1',),
                  baseDN=BASE,
                  scope=pureldap.LDAP_SCOPE_wholeSubtree):
    return pureldap.LDAPSearchRequest(
        baseObject=baseDN,
        scope=scope,
        derefAliases=pureldap.LDAP_DEREF_neverDerefAliases,
        sizeLimit=0,
        timeLimit=0,
        typesOnly=0,
        filter=filterObject,
        attributes=list(attributes))


def nameFilter(attributeType, value, objectClass=None):
    if objectClass is None:
        classFilter = pureldap.LDAPFilter_present(value='objectClass')
    else:
        classFilter = client.equalityMatch('objectClass', objectClass)
    return pureldap.LDAPFilter_and([
        classFilter,
        client.equalityMatch(attributeType, value),
    ])


def modifiedAttributes(op):
    """The attribute types a modify request touches, in order."""
    return [key for operation, key, values in modifications(op)]


class SearchTests(unittest.TestCase):

    def testDefaults(self):
        """By default the whole subtree below the search base is searched, without attributes."""
        driver = LDAPClientTestDriver([
            searchResultEntry('cn=foo,dc=example,dc=com'),
            searchResultDone(),
        ])
        c = client.DirectoryClient(driver, BASE)
        result = self.successResultOf(c.search())
        driver.assertSent(searchRequest(pureldap.LDAPFilterMatchAll))
        self.assertEqual(len(result), 1)
        self.assertEqual(result[0].dn, DistinguishedName('cn=foo,dc=example,dc=com'))
        self.assertEqual(result[0].getRequestedAttributes(), [])

    def testAttributes(self):
        driver = LDAPClientTestDriver([
            searchResultEntry('cn=foo,dc=example,dc=com',
                              cn=['foo'], description=['one', 'two']),
            searchResultDone(),
        ])
        c = client.DirectoryClient(driver, BASE)
        result = self.successResultOf(c.search(attributes=['cn', 'description', 'mail']))
        driver.assertSent(searchRequest(
            pureldap.LDAPFilterMatchAll,
            attributes=['cn', 'description', 'mail']))
        o = result[0]
        self.assertEqual(o.getKnownAttributeValues('CN'), ['foo'])
        self.assertEqual(o.getKnownAttributeValues('description'), ['one', 'two'])
        self.assertEqual(o.getKnownAttributeValue('mail'), None)
        self.assertTrue(o.isKnown('mail'))
        self.assertFalse(o.isKnown('sn'))

    def testBytesResults(self):
        driver = LDAPClientTestDriver([
            searchResultEntry(b'cn=foo,dc=example,dc=com', **{'cn': [b'foo']}),
            searchResultDone(),
        ])
        c = client.DirectoryClient(driver, BASE)
        result = self.successResultOf(c.search(attributes=['cn']))
        self.assertEqual(result[0].dn, DistinguishedName('cn=foo,dc=example,dc=com'))
        self.assertEqual(result[0].getKnownAttributeValues('cn'), ['foo'])

    def testNoneAttributes(self):
        driver = LDAPClientTestDriver([searchResultDone()])
        c = client.DirectoryClient(driver, BASE)
        self.assertEqual(self.successResultOf(c.search(attributes=None)), [])
        driver.assertSent(searchRequest(pureldap.LDAPFilterMatchAll))

    def testFilterTextAndBase(self):
        driver = LDAPClientTestDriver([searchResultDone()])
        c = client.DirectoryClient(driver, BASE)
        d = c.search(filterText='(cn=foo)',
                     baseDN='ou=People,dc=example,dc=com',
                     scope=pureldap.LDAP_SCOPE_singleLevel)
        self.successResultOf(d)
        driver.assertSent(searchRequest(
            ldapfilter.parseFilter('(cn=foo)'),
            baseDN='ou=People,dc=example,dc=com',
            scope=pureldap.LDAP_SCOPE_singleLevel))

    def testInvalidFilterText(self):
        """A filter that does not parse fails the Deferred, nothing is sent."""
        driver = LDAPClientTestDriver()
        c = client.DirectoryClient(driver, BASE)
        d = c.search(filterText='(cn=foo')
        self.failureResultOf(d, ldapfilter.InvalidLDAPFilter)
        driver.assertNothingSent()

    def testInvalidFilterTextWithObject(self):
        driver = LDAPClientTestDriver()
        c = client.DirectoryClient(driver, BASE)
        d = c.search(filterObject=pureldap.LDAPFilterMatchAll, filterText='cn=(')
        self.failureResultOf(d, ldapfilter.InvalidLDAPFilter)
        driver.assertNothingSent()

    def testError(self):
        driver = LDAPClientTestDriver([
            searchResultDone(ldaperrors.LDAPNoSuchObject.resultCode, 'no such object'),
        ])
        c = client.DirectoryClient(driver, BASE)
        fail = self.failureResultOf(c.search(), ldaperrors.LDAPNoSuchObject)
        self.assertIn('search dc=example,dc=com: no such object', str(fail.value))

    def testTransportFailure(self):
        driver = LDAPClientTestDriver(failure.Failure(error.ConnectionLost()))
        c = client.DirectoryClient(driver, BASE)
        self.failureResultOf(c.search(), error.ConnectionLost)

    def testDebugLogsSearches(self):
        messages = []
        log.addObserver(messages.append)
        self.addCleanup(log.removeObserver, messages.append)
        driver = LDAPClientTestDriver([searchResultDone()])
        c = client.DirectoryClient(driver, BASE, debug=True)
        self.successResultOf(c.search(filterText='(cn=foo)'))
        text = [' '.join(e['message']) for e in messages]
        self.assertIn('search dc=example,dc=com scope=2 filter=(cn=foo) attributes=1.1', text)


class LookupTests(unittest.TestCase):

    def testObjectExistsBySamAccountName(self):
        driver = LDAPClientTestDriver([
            searchResultEntry('cn=John,dc=example,dc=com'),
            searchResultDone(),
        ])
        c = client.DirectoryClient(driver, BASE)
        self.assertTrue(self.successResultOf(c.objectExists('jdoe', 'user')))
        driver.assertSent(searchRequest(nameFilter('sAMAccountName', 'jdoe', 'user')))

    def testObjectExistsByDN(self):
        driver = LDAPClientTestDriver([searchResultDone()])
        c = client.DirectoryClient(driver, BASE)
        d = c.objectExists('CN=John,DC=example,DC=com')
        self.assertFalse(self.successResultOf(d))
        driver.assertSent(searchRequest(
            nameFilter('distinguishedName', 'CN=John,DC=example,DC=com')))

    def testObjectExistsAmbiguous(self):
        driver = LDAPClientTestDriver([
            searchResultEntry('cn=a,dc=example,dc=com'),
            searchResultEntry('cn=b,dc=example,dc=com'),
            searchResultDone(),
        ])
        c = client.DirectoryClient(driver, BASE)
        fail = self.failureResultOf(c.objectExists('jdoe'), errors.AmbiguousResultError)
        self.assertEqual(fail.value.count, 2)

    def testContainerExistsSearchBase(self):
        driver = LDAPClientTestDriver()
        c = client.DirectoryClient(driver, BASE)
        self.assertTrue(self.successResultOf(c.containerExists('DC=example,DC=com')))
        driver.assertNothingSent()

    def testContainerExists(self):
        driver = LDAPClientTestDriver([
            searchResultEntry('ou=People,dc=example,dc=com'),
            searchResultDone(),
        ])
        c = client.DirectoryClient(driver, BASE)
        self.assertTrue(self.successResultOf(c.containerExists('ou=People,dc=example,dc=com')))
        driver.assertSent(searchRequest(pureldap.LDAPFilter_and([
            pureldap.LDAPFilter_or([
                client.equalityMatch('objectClass', 'organizationalUnit'),
                client.equalityMatch('objectClass', 'container'),
                client.equalityMatch('objectClass', 'domain'),
            ]),
            client.equalityMatch('distinguishedName', 'ou=People,dc=example,dc=com'),
        ])))

    def testGetEntryByFilterNotFound(self):
        driver = LDAPClientTestDriver([searchResultDone()])
        c = client.DirectoryClient(driver, BASE)
        d = c.getEntryByFilter('jdoe', 'sAMAccountName', 'user', ['cn'])
        fail = self.failureResultOf(d, errors.NotFoundError)
        self.assertEqual(str(fail.value), 'no entry returned for user object "jdoe"')
        driver.assertSent(searchRequest(
            nameFilter('sAMAccountName', 'jdoe', 'user'), attributes=['cn']))

    def testGetObjectByDN(self):
        driver = LDAPClientTestDriver([
            searchResultEntry('CN=John,DC=example,DC=com', cn=['John']),
            searchResultDone(),
        ])
        c = client.DirectoryClient(driver, BASE)
        o = self.successResultOf(c.getObjectByDN('CN=John,DC=example,DC=com', ['cn']))
        self.assertEqual(o.getKnownAttributeValue('cn'), 'John')
        driver.assertSent(searchRequest(
            nameFilter('distinguishedName', 'CN=John,DC=example,DC=com'),
            attributes=['cn']))

    def testGetAccount(self):
        driver = LDAPClientTestDriver([
            searchResultEntry('CN=John,DC=example,DC=com', sAMAccountName=['jdoe']),
            searchResultDone(),
        ])
        c = client.DirectoryClient(driver, BASE)
        account = self.successResultOf(c.getAccount('jdoe', attributes=['mail']))
        self.assertIsInstance(account, Account)
        self.assertEqual(account.getSamAccountName(), 'jdoe')
        driver.assertSent(searchRequest(
            nameFilter('sAMAccountName', 'jdoe', 'user'),
            attributes=['sAMAccountName', 'mail']))


class PrimitiveTests(unittest.TestCase):

    def testAddOrdersAttributes(self):
        driver = LDAPClientTestDriver([pureldap.LDAPAddResponse(resultCode=0)])
        c = client.DirectoryClient(driver, BASE)
        d = c.add('cn=foo,dc=example,dc=com', {
            'sn': ['bar'],
            'objectClass': ['user'],
            'cn': 'foo',
            'userAccountControl': [514],
        })
        self.successResultOf(d)

        def attr(name, values):
            return (pureldap.LDAPAttributeDescription(name),
                    pureber.BERSet([pureldap.LDAPAttributeValue(x) for x in values]))

        driver.assertSent(pureldap.LDAPAddRequest(
            entry='cn=foo,dc=example,dc=com',
            attributes=[
                attr('objectClass', [b'user']),
                attr('cn', [b'foo']),
                attr('sn', [b'bar']),
                attr('userAccountControl', [b'514']),
            ]))

    def testAddFailure(self):
        driver = LDAPClientTestDriver([pureldap.LDAPAddResponse(
            resultCode=ldaperrors.LDAPEntryAlreadyExists.resultCode,
            errorMessage='entry exists')])
        c = client.DirectoryClient(driver, BASE)
        d = c.add('cn=foo,dc=example,dc=com', {'objectClass': ['user']})
        fail = self.failureResultOf(d, ldaperrors.LDAPEntryAlreadyExists)
        self.assertEqual(str(fail.value),
                         'entryAlreadyExists: add cn=foo,dc=example,dc=com: entry exists')

    def testModify(self):
        driver = LDAPClientTestDriver([pureldap.LDAPModifyResponse(resultCode=0)])
        c = client.DirectoryClient(driver, BASE)
        mods = [delta.Replace('description', ['x']), delta.Add('mail', ['a@example.com'])]
        self.successResultOf(c.modify('cn=foo,dc=example,dc=com', mods))
        driver.assertSent(pureldap.LDAPModifyRequest(
            object='cn=foo,dc=example,dc=com',
            modification=[x.asLDAP() for x in mods]))

    def testModifyFailure(self):
        driver = LDAPClientTestDriver([pureldap.LDAPModifyResponse(
            resultCode=ldaperrors.LDAPNoSuchObject.resultCode)])
        c = client.DirectoryClient(driver, BASE)
        d = c.modify('cn=foo,dc=example,dc=com', [delta.Replace('description', ['x'])])
        self.failureResultOf(d, ldaperrors.LDAPNoSuchObject)

    def testModifyConnectionLost(self):
        driver = LDAPClientTestDriver(failure.Failure(error.ConnectionLost()))
        c = client.DirectoryClient(driver, BASE)
        d = c.modify('cn=foo,dc=example,dc=com', [delta.Replace('description', ['x'])])
        self.failureResultOf(d, error.ConnectionLost)

    def testModifiedAttributes(self):
        """Changes come back decoded from the encoded modify request."""
        mods = [delta.Replace('description', ['x']), delta.Add('mail', ['a@example.com'])]
        op = pureldap.LDAPModifyRequest(object='cn=foo,dc=example,dc=com',
                                        modification=[x.asLDAP() for x in mods])
        self.assertEqual(list(modifications(op)),
                         [(2, 'description', ['x']), (0, 'mail', ['a@example.com'])])
        self.assertEqual(modifiedAttributes(op), ['description', 'mail'])

    def testModifyDNSameParent(self):
        driver = LDAPClientTestDriver([pureldap.LDAPModifyDNResponse(resultCode=0)])
        c = client.DirectoryClient(driver, BASE)
        self.successResultOf(c.modifyDN('cn=foo,dc=example,dc=com', 'cn=bar'))
        driver.assertSent(pureldap.LDAPModifyDNRequest(
            entry='cn=foo,dc=example,dc=com',
            newrdn='cn=bar',
            deleteoldrdn=1))

    def testModifyDNNewSuperior(self):
        driver = LDAPClientTestDriver([pureldap.LDAPModifyDNResponse(resultCode=0)])
        c = client.DirectoryClient(driver, BASE)
        d = c.modifyDN('cn=foo,dc=example,dc=com', 'cn=foo', 'ou=People,dc=example,dc=com')
        self.successResultOf(d)
        driver.assertSent(pureldap.LDAPModifyDNRequest(
            entry='cn=foo,dc=example,dc=com',
            newrdn='cn=foo',
            deleteoldrdn=1,
            newSuperior='ou=People,dc=example,dc=com'))

    def testDelete(self):
        driver = LDAPClientTestDriver([pureldap.LDAPDelResponse(resultCode=0)])
        c = client.DirectoryClient(driver, BASE)
        self.successResultOf(c.delete('cn=foo,dc=example,dc=com'))
        driver.assertSent(pureldap.LDAPDelRequest(entry='cn=foo,dc=example,dc=com'))

    def testDeleteFailure(self):
        driver = LDAPClientTestDriver([pureldap.LDAPDelResponse(
            resultCode=ldaperrors.LDAPNotAllowedOnNonLeaf.resultCode)])
        c = client.DirectoryClient(driver, BASE)
        fail = self.failureResultOf(c.delete('ou=a,dc=example,dc=com'),
                                    ldaperrors.LDAPNotAllowedOnNonLeaf)
        self.assertIn('delete ou=a,dc=example,dc=com', str(fail.value))

    def testWritesAreLogged(self):
        messages = []
        log.addObserver(messages.append)
        self.addCleanup(log.removeObserver, messages.append)
        driver = LDAPClientTestDriver([pureldap.LDAPModifyResponse(resultCode=0)])
        c = client.DirectoryClient(driver, BASE)
        d = c.modify('cn=foo,dc=example,dc=com',
                     [delta.Replace('unicodePwd', [b'"\x00s\x00"\x00'])])
        self.successResultOf(d)
        text = [' '.join(e['message']) for e in messages]
        self.assertEqual(text, ['modify cn=foo,dc=example,dc=com: replace unicodePwd'])


class CreateTests(unittest.TestCase):

    def setUp(self):
        self.fake = FakeDirectory(searchBase='DC=example,DC=com')
        self.fake.addEntry('CN=Users,DC=example,DC=com', {'objectClass': ['container']})
        self.client = client.DirectoryClient(self.fake, 'DC=example,DC=com')

    def testCreateObject(self):
        d = self.client.createObject(
            'CN=printer,CN=Users,DC=example,DC=com',
            {'description': ['office']},
            'container')
        o = self.successResultOf(d)
        self.assertEqual(o.dn, DistinguishedName('CN=printer,CN=Users,DC=example,DC=com'))
        self.assertEqual(o.getKnownAttributeValues('description'), ['office'])
        self.assertEqual(o.getRequestedAttributes(), ['description', 'objectClass'])
        add, = self.fake.sentOfType(pureldap.LDAPAddRequest)
        self.assertEqual(add.attributes[0][0].value, 'objectClass')

    def testCreateObjectExists(self):
        d = self.client.createObject('CN=Users,DC=example,DC=com', {}, 'container')
        self.failureResultOf(d, errors.AlreadyExistsError)
        self.assertEqual(self.fake.sentOfType(pureldap.LDAPAddRequest), [])

    def testCreateOrganizationalUnit(self):
        ou = self.successResultOf(
            self.client.createOrganizationalUnit('OU=Sales,DC=example,DC=com'))
        self.assertIsInstance(ou, OrganizationalUnit)
        self.assertEqual(self.fake.getAttributeValues('OU=Sales,DC=example,DC=com', 'ou'),
                         ['Sales'])
        self.assertIn('organizationalUnit',
                      self.fake.getAttributeValues('OU=Sales,DC=example,DC=com', 'objectClass'))

    def testCreateOrganizationalUnitOutsideSearchBase(self):
        d = self.client.createOrganizationalUnit('OU=Sales,DC=other,DC=com')
        self.failureResultOf(d, errors.InvalidOrganizationalUnitError)
        self.assertEqual(self.fake.sent, [])

    def testCreateOrganizationalUnitIsSearchBase(self):
        d = self.client.createOrganizationalUnit('DC=example,DC=com')
        self.failureResultOf(d, errors.InvalidOrganizationalUnitError)

    def testCreateOrganizationalUnitWrongType(self):
        d = self.client.createOrganizationalUnit('CN=Sales,DC=example,DC=com')
        self.failureResultOf(d, errors.InvalidOrganizationalUnitError)

    def testCreateOrganizationalUnitMissingParent(self):
        d = self.client.createOrganizationalUnit('OU=Team,OU=Sales,DC=example,DC=com')
        fail = self.failureResultOf(d, errors.ContainerNotFoundError)
        self.assertEqual(fail.value.container, 'OU=Sales,DC=example,DC=com')
        self.assertFalse(self.fake.exists('OU=Team,OU=Sales,DC=example,DC=com'))

    def testCreateOrganizationalUnitRecursive(self):
        d = self.client.createOrganizationalUnitRecursive(
            'OU=Team,OU=Sales,OU=EMEA,DC=example,DC=com')
        ou = self.successResultOf(d)
        self.assertEqual(ou.dn, DistinguishedName('OU=Team,OU=Sales,OU=EMEA,DC=example,DC=com'))
        adds = [x.entry for x in self.fake.sentOfType(pureldap.LDAPAddRequest)]
        self.assertEqual(adds, [
            'OU=EMEA,DC=example,DC=com',
            'OU=Sales,OU=EMEA,DC=example,DC=com',
            'OU=Team,OU=Sales,OU=EMEA,DC=example,DC=com',
        ])

    def testCreateOrganizationalUnitRecursiveKeepsExisting(self):
        self.fake.addEntry('OU=EMEA,DC=example,DC=com', {'objectClass': ['organizationalUnit']})
        d = self.client.createOrganizationalUnitRecursive('OU=Sales,OU=EMEA,DC=example,DC=com')
        self.successResultOf(d)
        adds = [x.entry for x in self.fake.sentOfType(pureldap.LDAPAddRequest)]
        self.assertEqual(adds, ['OU=Sales,OU=EMEA,DC=example,DC=com'])

    def testCreateOrganizationalUnitRecursiveExists(self):
        self.fake.addEntry('OU=EMEA,DC=example,DC=com', {'objectClass': ['organizationalUnit']})
        d = self.client.createOrganizationalUnitRecursive('OU=EMEA,DC=example,DC=com')
        self.failureResultOf(d, errors.AlreadyExistsError)

    def testCreateUser(self):
        d = self.client.createUser(
            'jdoe', 'CN=Users,DC=example,DC=com', 'Secret123!',
            {'displayName': ['John Doe']})
        account = self.successResultOf(d)
        dn = 'CN=John Doe,CN=Users,DC=example,DC=com'
        self.assertEqual(account.dn, DistinguishedName(dn))

        add, = self.fake.sentOfType(pureldap.LDAPAddRequest)
        written = dict((x.value, [v.value for v in vs]) for x, vs in add.attributes)
        self.assertEqual(written['userAccountControl'], [b'514'])
        self.assertEqual(written['accountExpires'], [b'0'])
        self.assertNotIn('unicodePwd', written)

        modifies = self.fake.sentOfType(pureldap.LDAPModifyRequest)
        self.assertEqual([modifiedAttributes(x) for x in modifies],
                         [['unicodePwd'], ['userAccountControl']])
        self.assertEqual(self.fake.getAttributeValues(dn, 'userAccountControl'),
                         [str(uac.NORMAL_ACCOUNT)])
        self.assertEqual(self.fake.getAttributeValues(dn, 'unicodePwd'),
                         ['"Secret123!"'.encode('utf-16-le')])

    def testCreateUserDisabledPasswordNeverExpires(self):
        d = self.client.createUser(
            'jdoe', 'CN=Users,DC=example,DC=com', 'Secret123!',
            enabled=False, passwordNeverExpires=True)
        account = self.successResultOf(d)
        self.assertEqual(account.dn, DistinguishedName('CN=jdoe,CN=Users,DC=example,DC=com'))
        self.assertEqual(
            self.fake.getAttributeValues(account.dn, 'userAccountControl'),
            [str(uac.NORMAL_ACCOUNT | uac.ACCOUNTDISABLE | uac.DONT_EXPIRE_PASSWORD)])

    def testCreateUserNamePrecedence(self):
        d = self.client.createUser(
            'jdoe', 'CN=Users,DC=example,DC=com', 'Secret123!',
            {'name': ['Johnny'], 'displayName': ['John Doe']})
        account = self.successResultOf(d)
        self.assertEqual(account.dn, DistinguishedName('CN=Johnny,CN=Users,DC=example,DC=com'))
        add, = self.fake.sentOfType(pureldap.LDAPAddRequest)
        self.assertNotIn('name', [x.value for x, vs in add.attributes])

    def testCreateUserExists(self):
        self.fake.addEntry('CN=John,CN=Users,DC=example,DC=com', {
            'objectClass': ['user'],
            'sAMAccountName': ['jdoe'],
        })
        d = self.client.createUser('jdoe', 'CN=Users,DC=example,DC=com', 'x')
        fail = self.failureResultOf(d, errors.AlreadyExistsError)
        self.assertEqual(str(fail.value), 'user object "jdoe" already exists')

    def testCreateUserMissingContainer(self):
        d = self.client.createUser('jdoe', 'OU=Nowhere,DC=example,DC=com', 'x')
        self.failureResultOf(d, errors.ContainerNotFoundError)
        self.assertEqual(self.fake.sentOfType(pureldap.LDAPAddRequest), [])

    def testPasswordNotLogged(self):
        messages = []
        log.addObserver(messages.append)
        self.addCleanup(log.removeObserver, messages.append)
        d = self.client.createUser('jdoe', 'CN=Users,DC=example,DC=com', 'Secret123!')
        self.successResultOf(d)
        for e in messages:
            self.assertNotIn('Secret123!', ' '.join(e['message']))

    def testCreateComputer(self):
        d = self.client.createComputer('WS01$', 'CN=Users,DC=example,DC=com')
        account = self.successResultOf(d)
        self.assertEqual(account.dn, DistinguishedName('CN=WS01,CN=Users,DC=example,DC=com'))
        self.assertEqual(account.getSamAccountName(), 'WS01$')
        self.assertEqual(
            self.fake.getAttributeValues(account.dn, 'userAccountControl'),
            [str(uac.WORKSTATION_TRUST_ACCOUNT | uac.PASSWD_NOTREQD)])
        self.assertIn('computer', self.fake.getAttributeValues(account.dn, 'objectClass'))

    def testDeleteObject(self):
        self.fake.addEntry('CN=printer,CN=Users,DC=example,DC=com', {'objectClass': ['container']})
        d = self.client.deleteObject('CN=printer,CN=Users,DC=example,DC=com')
        self.successResultOf(d)
        self.assertFalse(self.fake.exists('CN=printer,CN=Users,DC=example,DC=com'))

    def testDeleteObjectMissing(self):
        d = self.client.deleteObject('CN=printer,CN=Users,DC=example,DC=com')
        self.assertIdentical(self.successResultOf(d), None)
        self.assertEqual(self.fake.sentOfType(pureldap.LDAPDelRequest), [])


class SessionTests(unittest.TestCase):

    def bindRequest(self):
        return pureldap.LDAPBindRequest(dn='EXAMPLE\\admin', auth='secret')

    def config(self, **kw):
        return config.ADLDAPConfig(
            url='ldap://dc1.example.com',
            bindAccount='EXAMPLE\\admin',
            bindPassword='secret',
            **kw)

    def testConfiguredSearchBase(self):
        driver = LDAPClientTestDriver([pureldap.LDAPBindResponse(resultCode=0)])
        d = client.startSession(driver, self.config(searchBase='DC=example,DC=com'))
        c = self.successResultOf(d)
        self.assertEqual(c.searchBase, DistinguishedName('DC=example,DC=com'))
        self.assertIdentical(c.protocol, driver)
        driver.assertSent(self.bindRequest())

    def testDetectSearchBase(self):
        driver = LDAPClientTestDriver(
            [pureldap.LDAPBindResponse(resultCode=0)],
            [searchResultEntry('', defaultNamingContext=['DC=example,DC=com']),
             searchResultDone()],
        )
        c = self.successResultOf(client.startSession(driver, self.config()))
        self.assertEqual(c.searchBase, DistinguishedName('DC=example,DC=com'))
        driver.assertSent(
            self.bindRequest(),
            searchRequest(pureldap.LDAPFilterMatchAll,
                          attributes=['defaultNamingContext'],
                          baseDN='',
                          scope=pureldap.LDAP_SCOPE_baseObject))

    def testSearchBaseUndetectable(self):
        driver = LDAPClientTestDriver(
            [pureldap.LDAPBindResponse(resultCode=0)],
            [searchResultEntry(''), searchResultDone()],
        )
        d = client.startSession(driver, self.config())
        self.failureResultOf(d, errors.SearchBaseUndetectableError)

    def testBindRejected(self):
        driver = LDAPClientTestDriver([pureldap.LDAPBindResponse(
            resultCode=ldaperrors.LDAPInvalidCredentials.resultCode,
            errorMessage='80090308: LdapErr')])
        fail = self.failureResultOf(client.startSession(driver, self.config()),
                                    errors.BindError)
        self.assertEqual(fail.value.identity, 'EXAMPLE\\admin')
        self.assertIn('invalidCredentials', str(fail.value))
        self.assertNotIn('secret', str(fail.value))

    def testConnect(self):
        fake = FakeDirectory(bindAccount='EXAMPLE\\admin', bindPassword='secret')
        calls = []

        def connectToLDAPEndpoint(reactor, endpointStr, clientProtocol):
            calls.append(endpointStr)
            return defer.succeed(fake)

        self.patch(client.ldapconnector, 'connectToLDAPEndpoint', connectToLDAPEndpoint)
        c = self.successResultOf(client.connect(None, self.config()))
        self.assertEqual(calls, ['tcp:host=dc1.example.com:port=389'])
        self.assertEqual(c.searchBase, DistinguishedName('DC=example,DC=com'))

    def testConnectFailure(self):
        def connectToLDAPEndpoint(reactor, endpointStr, clientProtocol):
            return defer.fail(error.ConnectionRefusedError())

        self.patch(client.ldapconnector, 'connectToLDAPEndpoint', connectToLDAPEndpoint)
        fail = self.failureResultOf(client.connect(None, self.config()),
                                    errors.DirectoryConnectionError)
        self.assertEqual(fail.value.url, 'ldap://dc1.example.com')

    def testConnectBindFailureIsNotConnectionError(self):
        fake = FakeDirectory(bindAccount='EXAMPLE\\admin', bindPassword='other')
        self.patch(client.ldapconnector, 'connectToLDAPEndpoint',
                   lambda reactor, endpointStr, clientProtocol: defer.succeed(fake))
        self.failureResultOf(client.connect(None, self.config()), errors.BindError)

    def testConnectMissingURL(self):
        d = client.connect(None, config.ADLDAPConfig())
        self.failureResultOf(d, config.MissingURLError)
