from deptrecords.utils import password


def test_encrypt_and_verify():
    salt, hashed = password.encrypt_password("secret123")

    assert hashed != "secret123"
    assert password.verify_password("secret123", hashed, salt)
    assert not password.verify_password("wrong", hashed, salt)


def test_same_password_gets_distinct_salts():
    first = password.encrypt_password("secret123")
    second = password.encrypt_password("secret123")

    assert first[0] != second[0]
    assert first[1] != second[1]


def test_verify_with_corrupt_salt_returns_false():
    _, hashed = password.encrypt_password("secret123")

    assert not password.verify_password("secret123", hashed, "not-a-salt")


def test_temporary_password_shape():
    temporary = password.generate_temporary_password()

    assert len(temporary) == 10
    assert temporary.isalnum()


def test_unusable_password_matches_nothing_obvious():
    salt, hashed = password.unusable_password()

    assert not password.verify_password("", hashed, salt)
    assert not password.verify_password("secret123", hashed, salt)
