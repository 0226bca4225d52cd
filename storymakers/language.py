"""
Bilingual page bookkeeping.

Chinese pages are `name.html`, English pages `name-en.html`. Admin pages and
the Shilin walking guides exist in one language only and are never rewritten.
"""
from typing import Optional

LANGUAGE_COOKIE = 'storymakers_language'
DEFAULT_LANGUAGE = 'zh'
LANGUAGES = ('zh', 'en')

_SINGLE_LANGUAGE_MARKERS = ('admin', 'guides/', 'shilin-2hr', 'shilin-halfday', 'shilin-fullday')
_EXTERNAL_PREFIXES = ('http://', 'https://', '//', 'mailto:', 'tel:')

LABELS = {
    'zh': {
        'read_story': '閱讀故事',
        'back_to_stories': '返回故事列表',
        'no_stories': '目前沒有故事。',
        'no_district_stories': '還沒有士林的故事。<a href="/submit.html">投稿</a>，成為第一位！',
        'needs_configuration': '故事功能尚未設定，請檢查後端設定。',
        'submit_story': '分享你的故事',
        'field_title': '標題',
        'field_content': '故事內容',
        'field_district': '地區',
        'field_tags': '標籤（以逗號分隔）',
        'field_author_name': '姓名',
        'field_author_email': '電子郵件',
        'field_photos': '照片',
        'rights_confirm': '我確認擁有上傳內容的權利',
        'submit_button': '送出',
        'load_failed': '無法載入故事，請稍後再試。',
        'not_found': '找不到這個故事，或故事尚未公開。',
        'no_story_id': '未提供故事編號。',
    },
    'en': {
        'read_story': 'Read Story',
        'back_to_stories': 'Back to Stories',
        'no_stories': 'No stories available at this time.',
        'no_district_stories': 'No Shilin stories available yet. <a href="/submit-en.html">Submit a story</a> to get started!',
        'needs_configuration': 'Stories feature requires configuration. Please check your backend setup.',
        'submit_story': 'Share Your Story',
        'field_title': 'Title',
        'field_content': 'Story',
        'field_district': 'District',
        'field_tags': 'Tags (comma separated)',
        'field_author_name': 'Your name',
        'field_author_email': 'Email',
        'field_photos': 'Photos',
        'rights_confirm': 'I confirm that I own the rights to the content I upload',
        'submit_button': 'Submit',
        'load_failed': 'Unable to load stories. Please try again later.',
        'not_found': 'Story not found or not available.',
        'no_story_id': 'No story ID provided.',
    },
}


def normalize_language(lang: Optional[str]) -> str:
    lang = (lang or '').strip().lower()
    return lang if lang in LANGUAGES else DEFAULT_LANGUAGE


def label(key: str, lang: str) -> str:
    return LABELS[normalize_language(lang)][key]


def toggle_language(lang: str) -> str:
    return 'en' if normalize_language(lang) == 'zh' else 'zh'


def is_single_language(path: str) -> bool:
    return any(marker in path for marker in _SINGLE_LANGUAGE_MARKERS)


def localized_page(filename: str, lang: str) -> str:
    """Return the file name of `filename` in `lang`; unchanged when it has no variant"""
    filename = filename or 'index.html'
    if is_single_language(filename) or not filename.endswith('.html'):
        return filename
    if normalize_language(lang) == 'en':
        if filename.endswith('-en.html'):
            return filename
        return filename[:-len('.html')] + '-en.html'
    if filename.endswith('-en.html'):
        return filename[:-len('-en.html')] + '.html'
    return filename


def language_link(href: str, lang: str) -> str:
    """Rewrite an internal link so it points at the page in `lang`, keeping query and hash"""
    if not href or href.startswith(_EXTERNAL_PREFIXES) or href.startswith('#'):
        return href
    if is_single_language(href):
        return href

    path, sep_hash, fragment = href.partition('#')
    path, sep_query, query = path.partition('?')
    directory, _, filename = path.rpartition('/')
    if filename and not filename.endswith('.html'):
        return href
    prefix = directory + '/' if directory or path.startswith('/') else ''
    localized = prefix + localized_page(filename or 'index.html', lang)
    return localized + sep_query + query + sep_hash + fragment
