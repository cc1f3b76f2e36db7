"""Localized message catalogs for caller-facing errors."""

from __future__ import annotations

from .config import get_settings

MESSAGES: dict[str, dict[str, str]] = {
    "en": {
        "error.user.already_exists": "A user with this email already exists.",
        "error.activation_code.invalid": "The activation code is invalid.",
        "error.user.not_found": "No user found with this email.",
        "error.user.account_deleted": "This account has been deleted.",
        "error.user.account_not_activated": "This account has not been activated yet.",
        "error.password.invalid": "The password is incorrect.",
        "error.reset_code.invalid": "The reset code is invalid.",
        "error.reset_code.expired": "The reset code has expired. Please request a new one.",
        "error.internal": "An error occurred, please try again later.",
    },
    "fr": {
        "error.user.already_exists": "Un utilisateur avec cet email existe déjà.",
        "error.activation_code.invalid": "Le code d'activation est invalide.",
        "error.user.not_found": "Aucun utilisateur trouvé avec cet email.",
        "error.user.account_deleted": "Ce compte a été supprimé.",
        "error.user.account_not_activated": "Ce compte n'est pas encore activé.",
        "error.password.invalid": "Le mot de passe est incorrect.",
        "error.reset_code.invalid": "Le code de réinitialisation est invalide.",
        "error.reset_code.expired": "Le code de réinitialisation a expiré. Veuillez en demander un nouveau.",
        "error.internal": "Une erreur est survenue, veuillez réessayer plus tard.",
    },
}


def negotiate_locale(accept_language: str | None, default_locale: str | None = None) -> str:
    """Pick the best supported locale from an ``Accept-Language`` header value.

    ``default_locale`` is used when nothing in the header is supported; it
    falls back to the process settings when omitted.
    """
    default = default_locale or get_settings().default_locale
    if not accept_language:
        return default

    candidates: list[tuple[float, int, str]] = []
    for index, part in enumerate(accept_language.split(",")):
        tag, _, params = part.strip().partition(";")
        quality = 1.0
        if params.strip().startswith("q="):
            try:
                quality = float(params.strip()[2:])
            except ValueError:
                quality = 0.0
        language = tag.split("-")[0].strip().lower()
        if language in MESSAGES and quality > 0:
            candidates.append((-quality, index, language))

    if not candidates:
        return default
    return min(candidates)[2]


def translate(key: str, locale: str | None = None, default_locale: str | None = None) -> str:
    """Resolve ``key`` in ``locale``, falling back to the default locale, then to the key."""
    default = default_locale or get_settings().default_locale
    catalog = MESSAGES.get(locale or default) or MESSAGES.get(default, {})
    return catalog.get(key) or MESSAGES.get(default, {}).get(key, key)
