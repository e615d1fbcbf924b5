from flask_bcrypt import Bcrypt
from flask_login import LoginManager
from flask_wtf.csrf import CSRFProtect
from flask_talisman import Talisman
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

bcrypt = Bcrypt()
csrf = CSRFProtect()
talisman = Talisman()

login_manager = LoginManager()
login_manager.login_view = 'auth.login'
login_manager.login_message = 'Bu sayfayı görmek için giriş yapın.'
login_manager.login_message_category = 'info'
login_manager.session_protection = 'strong' # Protect against session hijacking

# Rate Limiting
limiter = Limiter(
    get_remote_address,
    default_limits=["1000 per day", "200 per hour"],
)

# Content Security Policy (CSP)
csp = {
    'default-src': '\'self\'',
    'script-src': ['\'self\'', '\'unsafe-inline\''], # inline tagger script on the edit page
    'style-src': ['\'self\'', '\'unsafe-inline\'', 'https://fonts.googleapis.com'],
    'font-src': ['\'self\'', 'https://fonts.gstatic.com'],
    'img-src': ['\'self\'', 'data:', 'https://ui-avatars.com'],
}
