import pytest

from deptrecords.core.exceptions import AuthenticationError, AuthorizationError
from deptrecords.schemas.user import Identity
from deptrecords.utils.permissions import Operation, authorize, is_allowed


def _identity(user_type: str) -> Identity:
    return Identity(user_id="a" * 24, username=user_type, user_type=user_type)


@pytest.mark.parametrize(
    "user_type, operation, expected",
    [
        ("instructor", Operation.READ, True),
        ("instructor", Operation.WRITE_RECORD, False),
        ("instructor", Operation.ADMIN, False),
        ("chairman", Operation.READ, True),
        ("chairman", Operation.WRITE_RECORD, True),
        ("chairman", Operation.ADMIN, False),
        ("admin", Operation.READ, True),
        ("admin", Operation.WRITE_RECORD, True),
        ("admin", Operation.ADMIN, True),
    ],
)
def test_role_matrix(user_type, operation, expected):
    assert is_allowed(_identity(user_type), operation) is expected


def test_anonymous_reads_follow_setting():
    assert not is_allowed(None, Operation.READ, allow_anonymous_reads=False)
    assert is_allowed(None, Operation.READ, allow_anonymous_reads=True)
    assert not is_allowed(None, Operation.WRITE_RECORD, allow_anonymous_reads=True)


def test_unknown_role_gets_nothing():
    assert not is_allowed(_identity("student"), Operation.READ)


def test_authorize_errors():
    with pytest.raises(AuthenticationError):
        authorize(None, Operation.READ, allow_anonymous_reads=False)

    with pytest.raises(AuthorizationError) as exc_info:
        authorize(_identity("instructor"), Operation.WRITE_RECORD)
    assert exc_info.value.message == "You do not have permission to edit records"

    with pytest.raises(AuthorizationError) as exc_info:
        authorize(_identity("chairman"), Operation.ADMIN)
    assert exc_info.value.message == "Admin access required"
