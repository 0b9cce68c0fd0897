from marshmallow import fields, validate, validates_schema

from models.schemas.common import RequestSchema, validate_passwords_match

EMAIL_INVALID = "Email is invalid"


def _email(**kwargs):
    return fields.Email(required=True, error_messages={"invalid": EMAIL_INVALID, "required": EMAIL_INVALID}, **kwargs)


def _required_text(message: str, min_length: int = 1):
    return fields.String(
        required=True,
        validate=validate.Length(min=min_length, error=message),
        error_messages={"required": message},
    )


class SignUpSchema(RequestSchema):
    first_name = _required_text("First name is required")
    last_name = _required_text("Last name is required")
    email = _email()
    password = _required_text("Password must have at least 8 characters", 8)
    confirm = _required_text("Confirm password is required")

    @validates_schema
    def passwords_match(self, data, **kwargs):
        validate_passwords_match(data.get("password"), data.get("confirm"))


class ConfirmEmailSchema(RequestSchema):
    email = _email()
    auth_code = _required_text("Auth code is required")


class LogInSchema(RequestSchema):
    email = _email()
    password = _required_text("Password is required")
    remember_me = fields.Boolean(load_default=False)


class RequestEmailChangeSchema(RequestSchema):
    new_email = _email()


class ConfirmEmailChangeSchema(RequestSchema):
    new_email = _email()
    auth_code = _required_text("Auth code is required")


class ForgotPasswordSchema(RequestSchema):
    email = _email()


class VerifyForgotPasswordSchema(RequestSchema):
    email = _email()
    auth_code = _required_text("Auth code is required")


class ChangePasswordSchema(RequestSchema):
    current_password = _required_text("Current password is required")
    new_password = _required_text("New password must have at least 8 characters", 8)
    confirm = _required_text("Confirm password is required")

    @validates_schema
    def passwords_match(self, data, **kwargs):
        validate_passwords_match(data.get("new_password"), data.get("confirm"))


class SetPasswordSchema(RequestSchema):
    password = _required_text("Password must have at least 8 characters", 8)
    confirm = _required_text("Confirm password is required")

    @validates_schema
    def passwords_match(self, data, **kwargs):
        validate_passwords_match(data.get("password"), data.get("confirm"))
