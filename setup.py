#!/usr/bin/python

import codecs
import os
import re

from setuptools import setup


here = os.path.abspath(os.path.dirname(__file__))


def read(*parts):
    with codecs.open(os.path.join(here, *parts), 'r') as f:
        return f.read()


def find_version(*file_paths):
    version_file = read(*file_paths)
    version_match = re.search(r"^__version__ = ['\"]([^'\"]*)['\"]",
                              version_file, re.M)
    if version_match:
        return version_match.group(1)
    raise RuntimeError("Unable to find version string.")


if __name__ == '__main__':
    setup(name="adldap",
          version=find_version("adldap", "__init__.py"),
          description="Active Directory objects over LDAP for configuration tools",
          long_description="""
adldap manages Active Directory objects for configuration management
hosts, on top of Twisted and ldaptor:

- distinguished name parsing and comparison.

- a directory client with searches, existence checks and creation
of organizational units, users and computers.

- user and computer accounts with userAccountControl flags, passwords
and service principal names.

- resource handlers for organizational units, users, computers and
service principal names.
""".strip(),
          license="MIT",
          python_requires=">=3.6",
          packages=[
              "adldap",
              "adldap.resources",
              "adldap.test",
          ],
          install_requires=[
              "ldaptor >= 21.2.0",
              "Twisted[tls] >= 20.3.0",
              "zope.interface",
          ],
          )
