import re
from urllib.parse import quote

USERNAME_RE = re.compile(r'^[a-zA-Z0-9_]{3,20}$')
EMAIL_RE = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')

TURKISH_MONTHS = [
    'Ocak', 'Şubat', 'Mart', 'Nisan', 'Mayıs', 'Haziran',
    'Temmuz', 'Ağustos', 'Eylül', 'Ekim', 'Kasım', 'Aralık',
]


def generate_username(email):
    local = (email or '').split('@')[0]
    return re.sub(r'[^a-z0-9]', '', local.lower())


def validate_username(username):
    return bool(USERNAME_RE.match(username or ''))


def validate_email(email):
    return bool(EMAIL_RE.match(email or ''))


def get_avatar_url(email):
    return f"https://ui-avatars.com/api/?name={quote(email or '')}&background=random&size=200"


def format_number(num):
    """1234 -> '1.2K', 3400000 -> '3.4M'."""
    if num >= 1000000:
        return f"{num / 1000000:.1f}M"
    if num >= 1000:
        return f"{num / 1000:.1f}K"
    return str(num)


def format_date(value):
    if value is None:
        return ''
    return f"{value.day} {TURKISH_MONTHS[value.month - 1]} {value.year}"
