"""Subjects and plain-text bodies for outgoing mail, keyed by template id.

Template ids are `<name>_<language>`; the context keys each template
needs are listed next to it.
"""

TEMPLATES: dict[str, tuple[str, str]] = {
    # username, confirmation_link
    "confirm-user_en": (
        "Welcome to Our Service",
        "Hi {username},\n\nconfirm your account within 24 hours:\n{confirmation_link}\n",
    ),
    "confirm-user_de": (
        "Willkommen bei unserem Service",
        "Hallo {username},\n\nbitte bestätige dein Konto innerhalb von 24 Stunden:\n"
        "{confirmation_link}\n",
    ),
    # username, password_reset_link
    "request-password-reset_en": (
        "Password Reset Request",
        "Hi {username},\n\nreset your password within 2 hours:\n{password_reset_link}\n",
    ),
    "request-password-reset_de": (
        "Passwort zurücksetzen",
        "Hallo {username},\n\nsetze dein Passwort innerhalb von 2 Stunden zurück:\n"
        "{password_reset_link}\n",
    ),
    # code
    "two-factor-auth-code_en": (
        "Your 2FA Code",
        "Your login code is {code}. It expires in 15 minutes.\n",
    ),
    "two-factor-auth-code_de": (
        "Ihr 2FA Code",
        "Ihr Anmeldecode lautet {code}. Er läuft in 15 Minuten ab.\n",
    ),
}


def render(template_id: str, context: dict) -> tuple[str, str]:
    """Return (subject, body). Raises KeyError for an unknown template."""
    subject, body = TEMPLATES[template_id]
    return subject, body.format(**context)
