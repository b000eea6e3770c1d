"""
Exception hierarchy shared by every Colory layer.

Two families matter to callers: :class:`ConfigurationError` means the setup is
wrong and retrying will not help, :class:`GenerationError` means a backend call
failed and the user may simply try again.
"""

from __future__ import annotations

from typing import Sequence


class ColoryError(Exception):
    """Base class for all Colory errors."""


class ConfigurationError(ColoryError):
    """The studio is not set up correctly for the requested operation."""


class MissingCredential(ConfigurationError):
    """A required backend credential is absent from the environment."""

    def __init__(self, names: Sequence[str]) -> None:
        self.names = tuple(names)
        joined = ", ".join(self.names)
        super().__init__(f"Missing required credential(s): {joined}.")


class InvalidRequest(ConfigurationError):
    """A generation request is missing required fields or carries unknown values."""


class GenerationError(ColoryError):
    """A content-generation call failed."""


class AllProvidersExhausted(GenerationError):
    """Every configured text-to-image strategy failed for a prompt."""

    def __init__(self, failures: Sequence[tuple[str, BaseException]]) -> None:
        self.failures = tuple(failures)
        tried = ", ".join(name for name, _ in self.failures) or "none"
        super().__init__(
            f"All image generation models failed (tried: {tried}). Please try again later."
        )


class ReferenceGenerationFailed(GenerationError):
    """The reference-conditioned image capability produced no image."""


class TextGenerationFailed(GenerationError):
    """The text capability failed or returned an empty response."""


class GenerationInProgress(GenerationError):
    """A plan is already running on this orchestrator."""


class PlanAborted(GenerationError):
    """
    A task failed and the remaining plan was abandoned.

    Carries the failing task's position and label so the caller can tell the
    user which part of the product could not be generated.
    """

    def __init__(self, position: int, label: str, cause: BaseException) -> None:
        self.position = position
        self.label = label
        self.cause = cause
        super().__init__(f"Generation of {label} (task {position + 1}) failed: {cause}")


class ChatUnavailable(ColoryError):
    """The chat backend could not produce a reply."""


class DocumentAssemblyFailed(ColoryError):
    """
    Rendering a bundle into a downloadable artifact failed.

    ``bundle`` is set by the studio to the generated content, which stays
    valid for another assembly attempt.
    """

    bundle: object | None = None


def user_message(exc: BaseException, *, product: str = "your book") -> str:
    """
    Translate an exception into the message shown to the end user.
    """
    if isinstance(exc, InvalidRequest):
        return f"Please check your request: {exc}"
    if isinstance(exc, ConfigurationError):
        return f"There is a problem with the setup: {exc}"
    if isinstance(exc, GenerationInProgress):
        return "A generation is already running. Please wait for it to finish."
    if isinstance(exc, PlanAborted):
        return f"Failed to generate {product} while working on {exc.label}. Please try again."
    if isinstance(exc, DocumentAssemblyFailed):
        return f"Your pictures are ready, but creating the download for {product} failed."
    if isinstance(exc, ChatUnavailable):
        return "Sorry, I'm having trouble connecting. Please try again."
    return f"Failed to generate {product}. Please try again."
