from marshmallow import Schema, fields


class UserOutSchema(Schema):
    id = fields.String(allow_none=False)
    first_name = fields.String()
    last_name = fields.String()
    email = fields.String()
    email_confirmed = fields.Boolean()
    created_at = fields.DateTime()
    updated_at = fields.DateTime()
