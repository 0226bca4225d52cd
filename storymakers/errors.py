"""
Error taxonomy shared by the pipelines and the HTTP layer.
Routes translate these into HTTPException responses.
"""


class StoryMakersError(Exception):
    """Base class; str(exc) is safe to show to a visitor"""


class ConfigurationError(StoryMakersError):
    pass


class ValidationError(StoryMakersError):
    pass


class AuthorizationError(StoryMakersError):
    pass


class BackendError(StoryMakersError):
    pass


class StoryNotFoundError(BackendError):
    def __init__(self, story_id):
        super().__init__(f'Story {story_id} not found')
        self.story_id = story_id
