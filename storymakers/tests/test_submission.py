import os

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError

from storymakers import crud
from storymakers.errors import ConfigurationError, ValidationError
from storymakers.models import Post, PostImage, PostTag, Tag
from storymakers.submission import SubmissionForm, UploadedPhoto, submit_story, validate_submission


class RecordingStorage:
    """Object store double that records every call"""

    def __init__(self):
        self.calls = []

    async def upload(self, name, data, **kwargs):
        self.calls.append(name)
        return name

    def public_url(self, path):
        return f'https://cdn.test/{path}'


def _form(**fields):
    fields.setdefault('title', 'Lanterns Over Shilin')
    fields.setdefault('content', 'The market wakes at dusk.\n\nLanterns sway above the stalls.')
    fields.setdefault('rights_owned', True)
    return SubmissionForm(**fields)


async def _count(client, model):
    async with client.session() as session:
        return (await session.execute(select(func.count()).select_from(model))).scalar_one()


class TestValidation:
    @pytest.mark.parametrize('fields, message', [
        ({'title': '   '}, 'Title is required.'),
        ({'content': '\n\n'}, 'Story content is required.'),
        ({'rights_owned': False}, 'You must confirm that you own the rights to the content you upload.'),
    ])
    def test_rejected(self, fields, message):
        with pytest.raises(ValidationError) as exc:
            validate_submission(_form(**fields))
        assert str(exc.value) == message

    def test_title_checked_first(self):
        with pytest.raises(ValidationError) as exc:
            validate_submission(_form(title='', content='', rights_owned=False))
        assert str(exc.value) == 'Title is required.'

    @pytest.mark.asyncio
    @pytest.mark.parametrize('fields', [{'title': ''}, {'rights_owned': False}])
    async def test_invalid_form_touches_nothing(self, client, png_bytes, fields):
        """Rejected forms never reach the object store or the database"""
        storage = RecordingStorage()
        client.storage = storage
        form = _form(**fields, photos=[UploadedPhoto(filename='a.png', data=png_bytes())])
        with pytest.raises(ValidationError):
            await submit_story(client, form)
        assert storage.calls == []
        assert await _count(client, Post) == 0

    @pytest.mark.asyncio
    async def test_missing_client(self):
        with pytest.raises(ConfigurationError):
            await submit_story(None, _form())


class TestSubmitStory:
    @pytest.mark.asyncio
    async def test_full_submission(self, client, settings, png_bytes):
        """Post, tags and images are written together and the first upload becomes the cover"""
        form = _form(
            tags='night market, lanterns, night market',
            author_name='Mei',
            author_email='mei@storymakers.tw',
            photos=[
                UploadedPhoto(filename='first.png', data=png_bytes('red'), content_type='image/png'),
                UploadedPhoto(filename='second.png', data=png_bytes('blue'), content_type='image/png'),
            ],
        )
        result = await submit_story(client, form)

        assert result.slug == 'lanterns-over-shilin'
        assert result.failed_uploads == [] and result.skipped_tags == []
        assert len(result.image_urls) == 2

        async with client.session() as session:
            post = await crud.get_post(session, result.story_id, with_images=True)
            assert post.status == 'pending'
            assert post.project_district == 'Shilin'
            assert post.content == [
                {'type': 'paragraph', 'text': 'The market wakes at dusk.'},
                {'type': 'paragraph', 'text': 'Lanterns sway above the stalls.'},
            ]
            assert [pt.tag.name for pt in post.post_tags] == ['night market', 'lanterns']
            assert [img.display_order for img in post.images] == [0, 1]
            assert post.cover_image_url == post.images[0].image_url == result.image_urls[0]
            assert post.images[0].storage_path.startswith('lanterns-over-shilin-')
            assert post.images[0].storage_path.endswith('-0.png')

        for url in result.image_urls:
            name = url.rsplit('/', 1)[1]
            assert os.path.exists(os.path.join(settings.media_root, name))

    @pytest.mark.asyncio
    async def test_tags_are_shared_between_stories(self, client):
        await submit_story(client, _form(tags='food'))
        await submit_story(client, _form(title='Second', tags='food, tea'))
        assert await _count(client, Tag) == 2
        assert await _count(client, PostTag) == 3

    @pytest.mark.asyncio
    async def test_invalid_photo_is_skipped(self, client, png_bytes):
        form = _form(photos=[
            UploadedPhoto(filename='notes.txt', data=b'not an image'),
            UploadedPhoto(filename='ok.png', data=png_bytes()),
            UploadedPhoto(filename='empty.png', data=b''),
        ])
        result = await submit_story(client, form)
        assert result.failed_uploads == ['notes.txt']
        assert len(result.image_urls) == 1
        assert result.image_urls[0].endswith('-1.png')
        async with client.session() as session:
            post = await crud.get_post(session, result.story_id, with_images=True)
            assert [img.display_order for img in post.images] == [0]
            assert post.cover_image_url == result.image_urls[0]

    @pytest.mark.asyncio
    async def test_no_photos_means_no_cover(self, client):
        result = await submit_story(client, _form())
        assert result.image_urls == []
        assert await _count(client, PostImage) == 0
        async with client.session() as session:
            post = await crud.get_post(session, result.story_id)
            assert post.cover_image_url is None

    @pytest.mark.asyncio
    async def test_failing_tag_is_skipped(self, client, monkeypatch):
        original = crud.get_or_create_tag

        async def flaky(session, name):
            if name == 'broken':
                raise SQLAlchemyError('tag table unavailable')
            return await original(session, name)

        monkeypatch.setattr(crud, 'get_or_create_tag', flaky)
        result = await submit_story(client, _form(tags='history, broken, food'))
        assert result.skipped_tags == ['broken']
        async with client.session() as session:
            post = await crud.get_post(session, result.story_id)
            assert [pt.tag.name for pt in post.post_tags] == ['history', 'food']

    @pytest.mark.asyncio
    async def test_untitled_slug_falls_back(self, client):
        result = await submit_story(client, _form(title='士林夜市'))
        assert result.slug == 'story'

    @pytest.mark.asyncio
    async def test_explicit_district_kept(self, client):
        result = await submit_story(client, _form(project_district='Beitou'))
        async with client.session() as session:
            post = await crud.get_post(session, result.story_id)
            assert post.project_district == 'Beitou'
