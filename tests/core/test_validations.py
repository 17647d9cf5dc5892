from pydantic import ValidationError
import pytest

from src.core.validations import STRONG_PASSWORD_VALIDATOR
from src.user.auth.schemas import ChangePasswordModel, ResetPasswordModel


@pytest.mark.parametrize("password", ["Passw0rd!", "NewPassw0rd!", "Str0ng@Secret$"])
def test_strong_password_accepted(password: str) -> None:
    assert STRONG_PASSWORD_VALIDATOR.match(password)


@pytest.mark.parametrize(
    "password",
    [
        "N3w-Passw0rd!",
        "Sh0rt!a",
        "nouppercase1!",
        "NOLOWERCASE1!",
        "NoDigitsHere!",
        "NoSpecial123",
    ],
)
def test_weak_or_unsupported_password_rejected(password: str) -> None:
    assert STRONG_PASSWORD_VALIDATOR.match(password) is None


def test_password_models_validate_new_password_only() -> None:
    model = ChangePasswordModel(
        current_password="anything-goes", new_password="NewPassw0rd!"
    )

    assert model.current_password == "anything-goes"
    with pytest.raises(ValidationError):
        ResetPasswordModel(token="token", password="N3w-Passw0rd!")
