"""Shared fixtures: a scripted extraction client and a recording sleep."""

import base64

import pytest

from invoscan.vision import ExtractionClient

PNG_URI = "data:image/png;base64," + base64.b64encode(b"\x89PNG\r\n\x1a\nfake").decode()


class ScriptedClient(ExtractionClient):
    """Returns pre-set results in order, one per call."""

    def __init__(self, results):
        super().__init__()
        self._results = list(results)
        self.calls = []

    async def extract(self, payload, instruction):
        self.calls.append((payload, instruction))
        if not self._results:
            raise AssertionError("ScriptedClient ran out of results")
        return self._results.pop(0)

    async def _generate(self, payload, instruction):
        raise AssertionError("not used")


class RecordingSleep:
    def __init__(self):
        self.delays = []

    async def __call__(self, delay):
        self.delays.append(delay)


@pytest.fixture
def sleep():
    return RecordingSleep()


@pytest.fixture
def png_uri():
    return PNG_URI


@pytest.fixture
def scripted():
    """Factory: ``scripted(Ok(...), Err(...), ...)`` -> ScriptedClient."""
    return lambda *results: ScriptedClient(results)
