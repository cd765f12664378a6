import pytest

from dreamweaver.models import DreamRecord, DreamTag, Perspective, TagType

from fakes import report_json


@pytest.fixture
def record():
    return DreamRecord(
        content="I was falling endlessly",
        tags=[DreamTag(type=TagType.LOCATION, label="cliff"), DreamTag(type=TagType.EMOTION, label="fear")],
        perspectives=[Perspective.PSYCHOLOGICAL, Perspective.CULTURAL],
    )


@pytest.fixture
def nightmare_json():
    return report_json(isNightmare=True, healingMessage="The fall is also a letting go.")
