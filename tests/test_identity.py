import os
import sys

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

from scheduling import AuthorizationError, Identity


def test_identity_from_session_claims():
    identity = Identity.from_claims({'school_code': 'SCH001', 'created_by': 'SA-9', 'role': 'admin'})
    assert identity.school_code == 'SCH001'
    assert identity.created_by == 'SA-9'
    assert identity.require_role('admin', 'superadmin') is identity


def test_missing_school_is_not_signed_in():
    with pytest.raises(AuthorizationError):
        Identity.from_claims({'created_by': 'SA-9', 'role': 'admin'})


def test_students_cannot_edit():
    identity = Identity.from_claims({'school_code': 'SCH001', 'created_by': 'st-1', 'role': 'student'})
    with pytest.raises(AuthorizationError):
        identity.require_role()
