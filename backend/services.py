"""Collaborator wiring: the story teller and illustrator used by the routes.

init_services() builds HTTP-backed collaborators from Settings; tests pass
stubs instead.
"""

from throne_saga.llm import HttpImageLLM, HttpLLM
from throne_saga.story import Illustrator, ImageCollaborator, StoryCollaborator, StoryTeller

from .settings import Settings

_settings: Settings | None = None
_story: StoryCollaborator | None = None
_images: ImageCollaborator | None = None


def init_services(
    settings: Settings,
    story: StoryCollaborator | None = None,
    images: ImageCollaborator | None = None,
) -> None:
    global _settings, _story, _images
    _settings = settings
    if story is None:
        llm = HttpLLM(
            provider_format=settings.text_provider,
            provider_url=settings.text_provider_url,
            api_key=settings.api_key,
            model=settings.text_model,
            timeout=settings.timeout,
        )
        story = StoryTeller(llm, settings.game)
    if images is None:
        image_llm = HttpImageLLM(
            provider_format=settings.image_provider,
            provider_url=settings.image_provider_url,
            api_key=settings.api_key,
            model=settings.image_model,
            timeout=settings.timeout,
        )
        images = Illustrator(image_llm)
    _story = story
    _images = images


def settings() -> Settings:
    assert _settings is not None, "Call init_services() before using services"
    return _settings


def story_teller() -> StoryCollaborator:
    assert _story is not None, "Call init_services() before using services"
    return _story


def illustrator() -> ImageCollaborator:
    assert _images is not None, "Call init_services() before using services"
    return _images
