from flask_wtf import FlaskForm
from flask_wtf.file import FileField, FileRequired, FileAllowed
from wtforms import (StringField, PasswordField, SubmitField, TextAreaField, BooleanField,
                     HiddenField, IntegerField, FloatField)
from wtforms.validators import DataRequired, Length, Regexp, Optional, URL, NumberRange, ValidationError

from models import User
from storage import IMAGE_EXTENSIONS
from utils import EMAIL_RE, generate_username, validate_username

# Top-level paths a public profile URL must not shadow
RESERVED_USERNAMES = {'admin', 'api', 'dashboard', 'go', 'login', 'logout', 'register', 'static', 'uploads'}


class LoginForm(FlaskForm):
    username = StringField('Kullanıcı adı', validators=[
        DataRequired(message="Bu alan zorunludur"),
        Length(min=3, max=20, message="Kullanıcı adı 3-20 karakter olmalıdır"),
        Regexp(r'^\w+$', message="Kullanıcı adı sadece harf, rakam ve _ içerebilir")
    ])
    password = PasswordField('Şifre', validators=[
        DataRequired(message="Bu alan zorunludur")
    ])
    # Honeypot field - should be left empty by humans
    honeypot = StringField('Middle Name', validators=[Length(max=0, message="Bot detected")])
    submit = SubmitField('Giriş Yap')


class RegisterForm(FlaskForm):
    email = StringField('E-posta', validators=[
        DataRequired(message="Bu alan zorunludur"),
        Length(max=150),
        Regexp(EMAIL_RE, message="Geçerli bir e-posta adresi girin.")
    ])
    username = StringField('Kullanıcı adı')
    password = PasswordField('Şifre', validators=[
        DataRequired(message="Bu alan zorunludur"),
        Length(min=6, message="Şifre en az 6 karakter olmalıdır.")
    ])
    honeypot = StringField('Middle Name', validators=[Length(max=0, message="Bot detected")])
    submit = SubmitField('Kayıt Ol')

    def validate_username(self, field):
        if not field.data and self.email.data:
            field.data = generate_username(self.email.data)
        if not validate_username(field.data):
            raise ValidationError('Kullanıcı adı 3-20 karakter arasında olmalı ve sadece harf, rakam ve _ içermelidir.')
        if field.data.lower() in RESERVED_USERNAMES:
            raise ValidationError('Bu kullanıcı adı kullanılamaz.')
        if User.query.filter_by(username=field.data).first():
            raise ValidationError('Bu kullanıcı adı zaten alınmış.')

    def validate_email(self, field):
        if User.query.filter_by(email=field.data.lower()).first():
            raise ValidationError('Bu e-posta adresi zaten kayıtlı.')


class PostForm(FlaskForm):
    image = FileField('Resim', validators=[
        FileRequired(message="Bir resim dosyası seçin"),
        FileAllowed(IMAGE_EXTENSIONS, message="Sadece resim dosyaları yüklenebilir")
    ])
    caption = TextAreaField('Açıklama', validators=[Optional(), Length(max=2200)])
    is_published = BooleanField('Yayınla', default=True)
    submit = SubmitField('Paylaş')


class CaptionForm(FlaskForm):
    caption = TextAreaField('Açıklama', validators=[Optional(), Length(max=2200)])
    submit = SubmitField('Kaydet')


class ProductForm(FlaskForm):
    name = StringField('Ürün adı', validators=[
        DataRequired(message="Ürün adı zorunludur"),
        Length(max=150)
    ])
    description = TextAreaField('Açıklama', validators=[Optional(), Length(max=1000)])
    affiliate_url = StringField('Affiliate URL', validators=[
        DataRequired(message="Affiliate URL zorunludur"),
        URL(message="Geçerli bir URL girin"),
        Length(max=1000)
    ])
    # Filled in by the tagger script from the click position
    x_coordinate = HiddenField(validators=[DataRequired(message="Resim üzerinde bir nokta seçin")])
    y_coordinate = HiddenField(validators=[DataRequired(message="Resim üzerinde bir nokta seçin")])
    submit = SubmitField('Ürünü Kaydet')


class ProductEditForm(FlaskForm):
    name = StringField('Ürün adı', validators=[DataRequired(message="Ürün adı zorunludur"), Length(max=150)])
    description = TextAreaField('Açıklama', validators=[Optional(), Length(max=1000)])
    affiliate_url = StringField('Affiliate URL', validators=[
        DataRequired(message="Affiliate URL zorunludur"),
        URL(message="Geçerli bir URL girin"),
        Length(max=1000)
    ])
    submit = SubmitField('Güncelle')


class PlanForm(FlaskForm):
    name = StringField('Plan adı', validators=[DataRequired(), Length(max=50)])
    max_posts = IntegerField('Maksimum post', validators=[
        NumberRange(min=-1, message="-1 (sınırsız) veya pozitif bir sayı girin")
    ])
    max_products_per_post = IntegerField('Post başına ürün', validators=[
        NumberRange(min=-1, message="-1 (sınırsız) veya pozitif bir sayı girin")
    ])
    price = FloatField('Fiyat', validators=[NumberRange(min=0)])
    features = TextAreaField('Özellikler (her satıra bir tane)', validators=[Optional()])
    is_active = BooleanField('Aktif')
    submit = SubmitField('Kaydet')

    def feature_list(self):
        return [f.strip() for f in (self.features.data or '').splitlines() if f.strip()]
