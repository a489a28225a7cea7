from dataclasses import dataclass
from typing import Mapping, Optional

from app.core.config import settings

SUPPORTED_LANGUAGES = ("en", "fa", "ar", "tr", "de", "fr", "es", "it", "ru", "zh", "ja", "ko", "hi", "ur", "he")
RTL_LANGUAGES = ("fa", "ar", "ur", "he")

SCHOOL_LANGUAGE_HEADER = "x-school-language"
SCHOOL_COUNTRY_HEADER = "x-school-country"
SCHOOL_CURRENCY_HEADER = "x-school-currency"

# Only the countries whose default language is not English
COUNTRY_LANGUAGES = {
    "IR": "fa", "AF": "fa",
    "SA": "ar", "AE": "ar", "EG": "ar", "IQ": "ar", "JO": "ar", "KW": "ar", "QA": "ar",
    "TR": "tr", "DE": "de", "AT": "de", "FR": "fr", "ES": "es", "MX": "es", "IT": "it",
    "RU": "ru", "CN": "zh", "JP": "ja", "KR": "ko", "IN": "hi", "PK": "ur", "IL": "he",
}

@dataclass
class LocaleContext:
    language: str
    direction: str
    currency: str

def normalize_language(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    language = value.strip().lower().replace("_", "-").split("-")[0]
    return language if language in SUPPORTED_LANGUAGES else None

def language_for_country(country_code: Optional[str]) -> str:
    if not country_code:
        return settings.DEFAULT_LANGUAGE
    return COUNTRY_LANGUAGES.get(country_code.strip().upper(), settings.DEFAULT_LANGUAGE)

def text_direction(language: str) -> str:
    return "rtl" if language in RTL_LANGUAGES else "ltr"

def parse_accept_language(header: Optional[str]) -> Optional[str]:
    """First supported language in an Accept-Language header, by q-value"""
    if not header:
        return None
    candidates = []
    for position, part in enumerate(header.split(",")):
        tag, _, params = part.strip().partition(";")
        quality = 1.0
        if params.strip().startswith("q="):
            try:
                quality = float(params.strip()[2:])
            except ValueError:
                quality = 0.0
        language = normalize_language(tag)
        if language and quality > 0:
            candidates.append((-quality, position, language))
    return min(candidates)[2] if candidates else None

def resolve_language(cookies: Mapping[str, str], headers: Mapping[str, str]) -> str:
    return (
        normalize_language(cookies.get(settings.LOCALE_COOKIE))
        or normalize_language(headers.get(SCHOOL_LANGUAGE_HEADER))
        or parse_accept_language(headers.get("accept-language"))
        or language_for_country(headers.get(SCHOOL_COUNTRY_HEADER))
    )

def resolve_currency(cookies: Mapping[str, str], headers: Mapping[str, str]) -> str:
    currency = cookies.get(settings.CURRENCY_COOKIE) or headers.get(SCHOOL_CURRENCY_HEADER)
    return (currency or settings.DEFAULT_CURRENCY).strip().upper()

def resolve_locale(cookies: Mapping[str, str], headers: Mapping[str, str]) -> LocaleContext:
    language = resolve_language(cookies, headers)
    return LocaleContext(
        language=language,
        direction=text_direction(language),
        currency=resolve_currency(cookies, headers),
    )

def format_price(amount: float, currency: str) -> str:
    if not amount:
        return "Free"
    return f"{amount:,.2f} {currency}"
