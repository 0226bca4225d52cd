from fastapi import APIRouter
from fastapi.responses import RedirectResponse

from ..language import LANGUAGE_COOKIE, language_link, normalize_language

router = APIRouter()

ONE_YEAR = 60 * 60 * 24 * 365


def _safe_next(path: str) -> str:
    # only same-site paths; anything else lands on the home page
    if not path or not path.startswith('/') or path.startswith('//'):
        return '/index.html'
    return path


@router.get('/language/{lang}')
async def switch_language(lang: str, next: str = '/index.html'):
    lang = normalize_language(lang)
    response = RedirectResponse(language_link(_safe_next(next), lang), status_code=303)
    response.set_cookie(LANGUAGE_COOKIE, lang, max_age=ONE_YEAR, samesite='lax')
    return response
