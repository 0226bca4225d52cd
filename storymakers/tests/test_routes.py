import re

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from storymakers import crud
from storymakers.config import Settings
from storymakers.main import create_app
from storymakers.moderation import set_status


@pytest_asyncio.fixture
async def app(settings):
    app = create_app(settings)
    await app.state.backend_accessor.get().create_schema()
    yield app
    await app.state.backend_accessor.close()


@pytest_asyncio.fixture
async def ac(app):
    async with AsyncClient(transport=ASGITransport(app=app), base_url='http://test') as ac:
        yield ac


def _hrefs(html):
    return re.findall(r'href="([^"]+)"', html)


async def _make_profile(app, email, role):
    client = app.state.backend_accessor.get()
    async with client.session() as session:
        async with session.begin():
            await crud.create_profile(session, email, 'pw-123456', role=role)


async def _submit(ac, **data):
    data.setdefault('title', 'Evening at the Temple')
    data.setdefault('content', 'Incense drifts.\n\nBells ring.')
    data.setdefault('rights_owned', 'true')
    return await ac.post('/submit', data=data)


class TestHealth:
    @pytest.mark.asyncio
    async def test_healthz(self, ac):
        res = await ac.get('/healthz')
        assert res.status_code == 200
        assert res.json() == {'status': 'ok', 'backend': True}


class TestSubmitRoute:
    @pytest.mark.asyncio
    async def test_submit_with_photo(self, ac, png_bytes):
        res = await ac.post(
            '/submit',
            data={
                'title': 'Evening at the Temple',
                'content': 'Incense drifts.\n\nBells ring.',
                'tags': 'temples, evening',
                'rights_owned': 'on',
            },
            files=[
                ('photos', ('gate.png', png_bytes(), 'image/png')),
                ('photos', ('bad.png', b'not really', 'image/png')),
            ],
        )
        assert res.status_code == 200
        body = res.json()
        assert body['ok'] is True
        assert body['story_id'] > 0
        assert body['failed_uploads'] == ['bad.png']
        assert body['skipped_tags'] == []

    @pytest.mark.asyncio
    async def test_missing_rights(self, ac):
        res = await _submit(ac, rights_owned='false')
        assert res.status_code == 400
        assert res.json()['detail'] == 'You must confirm that you own the rights to the content you upload.'

    @pytest.mark.asyncio
    async def test_missing_title(self, ac):
        res = await _submit(ac, title='')
        assert res.status_code == 400


class TestStoryPages:
    @pytest.mark.asyncio
    async def test_listing_shows_only_approved(self, app, ac):
        shown = (await _submit(ac, title='Shown Story')).json()['story_id']
        await _submit(ac, title='Pending Story')
        await set_status(app.state.backend_accessor.get(), shown, 'approved')

        res = await ac.get('/stories')
        assert res.status_code == 200
        assert 'Shown Story' in res.text
        assert 'Pending Story' not in res.text

    @pytest.mark.asyncio
    async def test_empty_listing_message(self, ac):
        ac.cookies.set('storymakers_language', 'en')
        res = await ac.get('/stories')
        assert 'No stories available at this time.' in res.text

    @pytest.mark.asyncio
    async def test_shilin_empty(self, ac):
        ac.cookies.set('storymakers_language', 'en')
        res = await ac.get('/stories/shilin')
        assert '<a href="/submit-en.html">Submit a story</a>' in res.text
        form = await ac.get('/submit-en.html')
        assert form.status_code == 200
        assert 'action="/submit"' in form.text

    @pytest.mark.asyncio
    async def test_shilin_card_links_resolve(self, app, ac):
        story_id = (await _submit(ac)).json()['story_id']
        await set_status(app.state.backend_accessor.get(), story_id, 'approved')
        res = await ac.get('/stories/shilin')
        links = [href for href in _hrefs(res.text) if 'story' in href and 'id=' in href]
        assert links == [f'/story.html?id={story_id}']
        detail = await ac.get(links[0])
        assert detail.status_code == 200
        assert 'Evening at the Temple' in detail.text
        back = [href for href in _hrefs(detail.text) if href.startswith('/stories')]
        assert back and (await ac.get(back[0])).status_code == 200

    @pytest.mark.asyncio
    async def test_story_detail(self, app, ac):
        story_id = (await _submit(ac, tags='temples')).json()['story_id']
        await set_status(app.state.backend_accessor.get(), story_id, 'approved')
        res = await ac.get('/story-en.html', params={'id': story_id})
        assert res.status_code == 200
        assert '<h1 class="story-title-main">Evening at the Temple</h1>' in res.text
        assert '<p>Bells ring.</p>' in res.text
        assert 'application/ld+json' in res.text
        assert f'https://storymakers.test/story.html?id={story_id}' in res.text

    @pytest.mark.asyncio
    async def test_pending_story_not_found(self, ac):
        story_id = (await _submit(ac)).json()['story_id']
        res = await ac.get('/story-en.html', params={'id': story_id})
        assert res.status_code == 404
        assert 'Story not found or not available.' in res.text

    @pytest.mark.asyncio
    async def test_missing_id(self, ac):
        res = await ac.get('/story-en.html')
        assert 'No story ID provided.' in res.text

    @pytest.mark.asyncio
    async def test_unconfigured_backend_degrades(self):
        app = create_app(Settings(database_url='YOUR_DATABASE_URL', jwt_secret='s'))
        async with AsyncClient(transport=ASGITransport(app=app), base_url='http://test') as ac:
            ac.cookies.set('storymakers_language', 'en')
            res = await ac.get('/stories')
            assert res.status_code == 200
            assert 'Stories feature requires configuration.' in res.text
            res = await _submit(ac)
            assert res.status_code == 503


class TestAdminRoutes:
    @pytest.mark.asyncio
    async def test_moderation_flow(self, app, ac):
        await _make_profile(app, 'admin@storymakers.tw', 'admin')
        story_id = (await _submit(ac)).json()['story_id']

        res = await ac.post('/admin/login', data={'email': 'admin@storymakers.tw', 'password': 'pw-123456'})
        assert res.status_code == 200
        headers = {'Authorization': f'Bearer {res.json()["access_token"]}'}

        res = await ac.get('/admin/posts', headers=headers)
        assert res.status_code == 200
        assert f'id="approve-{story_id}"' in res.text

        res = await ac.post(f'/admin/posts/{story_id}/approve', headers=headers)
        assert res.status_code == 200
        assert res.json()['status'] == 'approved'

        res = await ac.post('/admin/posts/999/reject', headers=headers)
        assert res.status_code == 404

    @pytest.mark.asyncio
    async def test_review_page_buttons_return_to_list(self, app, ac):
        """Form posts from the review page redirect back to the refreshed list"""
        await _make_profile(app, 'admin@storymakers.tw', 'admin')
        story_id = (await _submit(ac)).json()['story_id']
        res = await ac.post('/admin/login', data={'email': 'admin@storymakers.tw', 'password': 'pw-123456'})
        assert res.status_code == 200

        page = await ac.get('/admin/posts')
        view = [href for href in _hrefs(page.text) if 'id=' in href]
        assert view == [f'/story.html?id={story_id}']

        res = await ac.post(
            f'/admin/posts/{story_id}/reject',
            content=b'',
            headers={'Content-Type': 'application/x-www-form-urlencoded'},
        )
        assert res.status_code == 303
        assert res.headers['location'] == '/admin/posts'

        page = await ac.get(res.headers['location'])
        assert 'REJECTED' in page.text
        assert f'id="reject-{story_id}"' not in page.text
        assert f'id="approve-{story_id}"' in page.text

        res = await ac.post(f'/admin/posts/{story_id}/approve', content=b'',
                            headers={'Content-Type': 'application/x-www-form-urlencoded'})
        assert res.status_code == 303
        assert (await ac.get(view[0])).status_code == 200

    @pytest.mark.asyncio
    async def test_non_admin_rejected(self, app, ac):
        await _make_profile(app, 'writer@storymakers.tw', 'contributor')
        res = await ac.post('/admin/login', data={'email': 'writer@storymakers.tw', 'password': 'pw-123456'})
        assert res.status_code == 403
        assert res.json()['detail'] == 'Access denied. Admin privileges required.'

    @pytest.mark.asyncio
    async def test_bad_credentials(self, app, ac):
        await _make_profile(app, 'admin@storymakers.tw', 'admin')
        res = await ac.post('/admin/login', data={'email': 'admin@storymakers.tw', 'password': 'wrong'})
        assert res.status_code == 401

    @pytest.mark.asyncio
    async def test_anonymous_cannot_moderate(self, ac):
        story_id = (await _submit(ac)).json()['story_id']
        assert (await ac.get('/admin/posts')).status_code == 403
        assert (await ac.post(f'/admin/posts/{story_id}/approve')).status_code == 403


class TestLanguageRoute:
    @pytest.mark.asyncio
    async def test_switch_sets_cookie_and_redirects(self, ac):
        res = await ac.get('/language/en', params={'next': '/story.html?id=3'})
        assert res.status_code == 303
        assert res.headers['location'] == '/story-en.html?id=3'
        assert 'storymakers_language=en' in res.headers['set-cookie']

    @pytest.mark.asyncio
    async def test_external_next_ignored(self, ac):
        res = await ac.get('/language/zh', params={'next': 'https://evil.example/x.html'})
        assert res.headers['location'] == '/index.html'
