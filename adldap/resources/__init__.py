"""
Resource handlers.

Each module maps the attributes an orchestration host declares for one
resource type onto DirectoryClient calls. The handlers share one calling
convention: C{create(client, data)}, C{read(client, resourceId)},
C{update(client, resourceId, changes)} and C{delete(client, resourceId)},
each returning a Deferred. create, read and update fire with the
resource state as a dict, read fires with None when the object is gone.
"""

from ldaptor.protocols.ldap import ldaperrors

from adldap import errors


def ignoreNotFound(reason):
    """Errback turning a NotFoundError into None."""
    reason.trap(errors.NotFoundError)
    return None


def asDiagnostics(reason):
    """
    Convert a failed operation into the host's diagnostics.

    Failures other than directory errors are passed on.
    """
    reason.trap(errors.ADLDAPError, ldaperrors.LDAPException)
    return [{
        'severity': 'error',
        'summary': str(reason.value),
        'detail': reason.value.__class__.__name__,
    }]
