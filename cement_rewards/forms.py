from flask_wtf import FlaskForm
from wtforms import StringField, PasswordField, BooleanField, SelectField, SelectMultipleField, TextAreaField, DateField, IntegerField
from wtforms.validators import DataRequired, Email, Length, EqualTo, Optional, NumberRange, InputRequired, ValidationError

from .permissions import USER_ROLES, SELF_REGISTER_ROLES, BUYER_ROLES, CUSTOMER_ROLES, ROLE_DEALER, ROLE_SUB_DEALER

CEMENT_TYPE_CHOICES = [('OPC', 'OPC'), ('PPC', 'PPC')]


def whole_number(form, field):
    """IntegerField truncates floats; refuse them instead."""
    raw = field.raw_data[0] if field.raw_data else None
    if isinstance(raw, bool) or (isinstance(raw, float) and not raw.is_integer()):
        raise ValidationError('Must be a whole number')


class ApiForm(FlaskForm):
    """Base for forms fed from JSON request bodies."""

    class Meta:
        csrf = False


class LoginForm(ApiForm):
    email = StringField('Email', validators=[DataRequired(), Email()])
    password = PasswordField('Password', validators=[DataRequired()])
    remember = BooleanField('Remember Me')


class RegisterForm(ApiForm):
    first_name = StringField('First Name', validators=[DataRequired(), Length(max=64)])
    last_name = StringField('Last Name', validators=[DataRequired(), Length(max=64)])
    email = StringField('Email', validators=[DataRequired(), Email()])
    password = PasswordField('Password', validators=[
        DataRequired(),
        Length(min=6, message='Password must be at least 6 characters long')
    ])
    confirm_password = PasswordField('Confirm Password', validators=[
        DataRequired(),
        EqualTo('password', message='Passwords must match')
    ])
    role = SelectField('Role', choices=[(r, r) for r in SELF_REGISTER_ROLES])
    mobile_number = StringField('Mobile Number', validators=[DataRequired(), Length(min=10, max=15)])
    city = StringField('City', validators=[DataRequired()])
    address = StringField('Address', validators=[DataRequired()])
    district = StringField('District', validators=[DataRequired()])
    gst_number = StringField('GST Number', validators=[Length(max=20)])

    def validate_gst_number(self, field):
        if self.role.data == ROLE_DEALER and not (field.data or '').strip():
            raise ValidationError('GST number is required for dealers')


class CustomerForm(ApiForm):
    """A dealer opening an account for a buyer; the district is the dealer's own."""
    first_name = StringField('First Name', validators=[DataRequired(), Length(min=2, max=64)])
    last_name = StringField('Last Name', validators=[DataRequired(), Length(min=2, max=64)])
    email = StringField('Email', validators=[DataRequired(), Email()])
    password = PasswordField('Password', validators=[
        DataRequired(),
        Length(min=6, message='Password must be at least 6 characters long')
    ])
    role = SelectField('Role', choices=[(r, r) for r in CUSTOMER_ROLES], default=ROLE_SUB_DEALER)
    mobile_number = StringField('Mobile Number', validators=[DataRequired(), Length(min=10, max=15)])
    city = StringField('City', validators=[DataRequired()])
    address = StringField('Address', validators=[DataRequired(), Length(min=5)])
    gst_number = StringField('GST Number', validators=[Length(max=20)])

    def validate_gst_number(self, field):
        if self.role.data == ROLE_SUB_DEALER and not (field.data or '').strip():
            raise ValidationError('GST number is required for sub dealers')


class EarnPointsForm(ApiForm):
    dealer_id = IntegerField('Dealer', validators=[InputRequired(message='Please select a dealer')])
    cement_type = SelectField('Cement Type', choices=CEMENT_TYPE_CHOICES)
    bag_count = IntegerField('Number of Bags', validators=[
        InputRequired(),
        whole_number,
        NumberRange(min=1, message='Bag count must be at least 1')
    ])


class RewardForm(ApiForm):
    title = StringField('Title', validators=[DataRequired(), Length(max=120)])
    description = TextAreaField('Description', validators=[Optional()])
    image_url = StringField('Image URL', validators=[Optional(), Length(max=500)])
    points_required = IntegerField('Points Required', validators=[
        InputRequired(),
        whole_number,
        NumberRange(min=1, message='Points required must be positive')
    ])
    available = BooleanField('Available', default=True)
    visible_to = SelectMultipleField('Visible To', choices=[(r, r) for r in BUYER_ROLES], validators=[Optional()])
    expiry_date = DateField('Expiry Date', validators=[Optional()])


class RoleForm(ApiForm):
    role = SelectField('Role', choices=[(r, r) for r in USER_ROLES])
