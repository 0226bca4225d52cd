import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile
from fastapi.responses import HTMLResponse

from ..errors import StoryMakersError
from ..language import label
from ..rendering import SITE_NAME, render_page, render_submit_form
from ..schemas.posts import SubmissionOut
from ..submission import SUCCESS_MESSAGE, SubmissionForm, UploadedPhoto, submit_story
from .deps import get_client, to_http

logger = logging.getLogger(__name__)

router = APIRouter()


def _form_page(lang: str) -> HTMLResponse:
    title = f'{label("submit_story", lang)} | {SITE_NAME}'
    return HTMLResponse(render_page(render_submit_form(lang), title=title, lang=lang))


@router.get('/submit.html', response_class=HTMLResponse)
async def submit_page():
    return _form_page('zh')


@router.get('/submit-en.html', response_class=HTMLResponse)
async def submit_page_en():
    return _form_page('en')


@router.post('/submit', response_model=SubmissionOut)
async def submit(
    title: str = Form(None),
    content: str = Form(None),
    project_district: str = Form(None),
    tags: str = Form(None),
    author_name: str = Form(None),
    author_email: str = Form(None),
    rights_owned: bool = Form(False),
    photos: Optional[List[UploadFile]] = File(None),
    client=Depends(get_client),
):
    uploaded = []
    for photo in photos or []:
        data = await photo.read()
        uploaded.append(UploadedPhoto(filename=photo.filename, data=data, content_type=photo.content_type))

    form = SubmissionForm(
        title=title,
        content=content,
        project_district=project_district,
        tags=tags,
        author_name=author_name,
        author_email=author_email,
        rights_owned=rights_owned,
        photos=uploaded,
    )
    try:
        result = await submit_story(client, form)
    except StoryMakersError as e:
        logger.warning(f'Submission rejected: {e}')
        raise to_http(e, 'submit story')

    return SubmissionOut(
        message=SUCCESS_MESSAGE,
        story_id=result.story_id,
        failed_uploads=result.failed_uploads,
        skipped_tags=result.skipped_tags,
    )
