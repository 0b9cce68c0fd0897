from marshmallow import Schema, EXCLUDE, ValidationError, pre_load

from utils.codes import normalize_email

PASSWORD_MISMATCH = "Passwords do not match"


class RequestSchema(Schema):
    """Base for request bodies: unknown keys are dropped, email-ish keys normalized."""

    EMAIL_FIELDS = ("email", "new_email")

    class Meta:
        unknown = EXCLUDE

    @pre_load
    def normalize(self, data, **kwargs):
        if isinstance(data, dict):
            data = dict(data)
            for key in self.EMAIL_FIELDS:
                if isinstance(data.get(key), str):
                    data[key] = normalize_email(data[key])
        return data


def validate_passwords_match(password, confirm) -> None:
    if password != confirm:
        raise ValidationError(PASSWORD_MISMATCH, "confirm")
