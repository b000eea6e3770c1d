"""
Tests for the user-facing error messages.
"""

import pytest

from colory.common.errors import (
    AllProvidersExhausted,
    ChatUnavailable,
    ConfigurationError,
    DocumentAssemblyFailed,
    GenerationError,
    GenerationInProgress,
    InvalidRequest,
    MissingCredential,
    PlanAborted,
    TextGenerationFailed,
    user_message,
)


def test_setup_problems_are_reported_as_such():
    message = user_message(MissingCredential(["GEMINI_API_KEY"]))

    assert message.startswith("There is a problem with the setup:")
    assert "GEMINI_API_KEY" in message


def test_invalid_request_asks_user_to_check_input():
    """Should blame the request, not the setup, for bad user input."""
    exc = InvalidRequest("'name' must be a non-empty string.")

    assert isinstance(exc, ConfigurationError)
    assert user_message(exc) == "Please check your request: 'name' must be a non-empty string."


def test_plan_aborted_names_the_failing_part():
    exc = PlanAborted(2, "Maze", RuntimeError("boom"))

    assert exc.position == 2
    assert "Maze" in str(exc)
    assert "task 3" in str(exc)
    assert user_message(exc, product="your coloring book") == (
        "Failed to generate your coloring book while working on Maze. Please try again."
    )


@pytest.mark.parametrize(
    "exc",
    [
        AllProvidersExhausted([("imagen", RuntimeError("quota"))]),
        TextGenerationFailed("empty"),
    ],
)
def test_generation_failures_suggest_retry(exc):
    assert isinstance(exc, GenerationError)
    assert user_message(exc, product="your stickers") == (
        "Failed to generate your stickers. Please try again."
    )


def test_other_messages():
    assert "already running" in user_message(GenerationInProgress("busy"))
    assert user_message(ChatUnavailable("down")) == (
        "Sorry, I'm having trouble connecting. Please try again."
    )
    assert "creating the download" in user_message(DocumentAssemblyFailed("disk full"))


def test_all_providers_exhausted_lists_models():
    exc = AllProvidersExhausted([("imagen", RuntimeError("a")), ("flash", RuntimeError("b"))])

    assert "imagen, flash" in str(exc)
