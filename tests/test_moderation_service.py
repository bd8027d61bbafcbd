# =============================================================================
# TESTES - ModerationOrchestrator
# =============================================================================

import pytest
from sqlalchemy.exc import OperationalError

from src.schemas.moderation_schemas import ModerationResult
from src.services.moderation_service import ModerationOrchestrator, chunk, format_flashcards
from src.utils.errors import InvalidRequestError, NotFoundError, UpstreamError
from tests.conftest import staging_is_empty


@pytest.fixture
def orchestrator(deck_store, publish_store, generator, settings):
    return ModerationOrchestrator(deck_store, publish_store, generator, settings)


def flagged_response(decision: str, terms):
    return {
        "overall_verdict": {
            "is_appropriate": False,
            "moderation_decision": decision,
            "flagged_cards": [{"term": t, "definition": "bad", "reason": "offensive"} for t in terms],
        }
    }


class TestHelpers:
    def test_format_flashcards(self, make_deck, deck_store):
        deck_id = make_deck(2)
        text = format_flashcards(deck_store.get_flashcards(deck_id))

        blocks = text.split("\n\n")
        assert len(blocks) == 2
        assert all(block.startswith("Definition: ") and "\nTerm: " in block for block in blocks)

    def test_chunk(self):
        assert chunk([1, 2, 3, 4, 5], 2) == [[1, 2], [3, 4], [5]]
        assert chunk([1, 2, 3], 0) == [[1, 2, 3]]


class TestModerate:
    """Um lote por padrão; vários lotes quando MODERATION_BATCH_SIZE > 0."""

    @pytest.mark.asyncio
    async def test_appropriate_deck_records_publish_request(self, orchestrator, make_deck, publish_store, generator, settings):
        deck_id = make_deck(4)

        outcome = await orchestrator.moderate(deck_id, "user-1")

        assert outcome.verdict.is_appropriate is True
        assert len(generator.calls) == 1
        assert generator.calls[0]["tag"] == "moderation"
        assert generator.calls[0]["source"].count("Term: ") == 4

        request = publish_store.get_by_deck_id(deck_id)
        assert request.id == outcome.publish_request_id
        assert request.user_id == "user-1"
        assert request.status == "FOR_APPROVAL"
        assert request.mod_verdict == "PENDING"
        assert request.ai_verdict["is_appropriate"] is True
        assert staging_is_empty(settings)

    @pytest.mark.asyncio
    async def test_single_batch_keeps_raw_decision(self, orchestrator, make_deck, generator):
        deck_id = make_deck(3)
        generator.moderation = flagged_response("profanity in card 2", ["Term 1"])

        outcome = await orchestrator.moderate(deck_id, "user-1")

        assert outcome.verdict.is_appropriate is False
        assert outcome.verdict.moderation_decision == "profanity in card 2"
        assert [c.term for c in outcome.verdict.flagged_cards] == ["Term 1"]

    @pytest.mark.asyncio
    async def test_batches_are_aggregated(self, orchestrator, make_deck, generator, settings):
        settings.MODERATION_BATCH_SIZE = 2
        deck_id = make_deck(5)
        responses = iter([
            flagged_response("first", ["a"]),
            {"overall_verdict": {"is_appropriate": True, "moderation_decision": "ok", "flagged_cards": []}},
            flagged_response("last", ["b", "c"]),
        ])
        generator.before_return = lambda: setattr(generator, "override", ModerationResult.model_validate(next(responses)))

        outcome = await orchestrator.moderate(deck_id, "user-1")

        assert len(generator.calls) == 3
        assert outcome.verdict.is_appropriate is False
        assert outcome.verdict.moderation_decision == "last"
        assert [c.term for c in outcome.verdict.flagged_cards] == ["a", "b", "c"]

    @pytest.mark.asyncio
    async def test_publish_request_failure_does_not_fail_moderation(self, orchestrator, make_deck, monkeypatch):
        deck_id = make_deck(2)

        def broken_create(*args, **kwargs):
            raise OperationalError("INSERT", {}, Exception("disk I/O error"))

        monkeypatch.setattr(orchestrator.publish_requests, "create", broken_create)
        outcome = await orchestrator.moderate(deck_id, "user-1")

        assert outcome.verdict.is_appropriate is True
        assert outcome.publish_request_id is None

    @pytest.mark.asyncio
    async def test_unknown_deck(self, orchestrator, generator):
        with pytest.raises(NotFoundError) as exc:
            await orchestrator.moderate("missing", "user-1")
        assert exc.value.code == "DECK_NOT_FOUND"
        assert generator.calls == []

    @pytest.mark.asyncio
    async def test_deck_without_flashcards(self, orchestrator, make_deck, generator):
        with pytest.raises(NotFoundError) as exc:
            await orchestrator.moderate(make_deck(0), "user-1")
        assert exc.value.code == "NO_VALID_FLASHCARDS"
        assert generator.calls == []

    @pytest.mark.asyncio
    async def test_invalid_ids(self, orchestrator, make_deck):
        with pytest.raises(InvalidRequestError):
            await orchestrator.moderate("", "user-1")
        with pytest.raises(InvalidRequestError):
            await orchestrator.moderate(make_deck(1), None)

    @pytest.mark.asyncio
    async def test_malformed_ai_response(self, orchestrator, make_deck, publish_store, generator, settings):
        deck_id = make_deck(2)
        generator.override = {"overall_verdict": {"moderation_decision": "?"}}

        with pytest.raises(UpstreamError):
            await orchestrator.moderate(deck_id, "user-1")

        assert publish_store.get_by_deck_id(deck_id) is None
        assert staging_is_empty(settings)


class TestReviewDeckEnvelope:
    @pytest.mark.asyncio
    async def test_success(self, orchestrator, make_deck):
        result = await orchestrator.review_deck(make_deck(2), "user-1")

        assert result.status == 200
        assert result.message == "Moderation review successful"
        assert result.data["overall_verdict"]["is_appropriate"] is True
        assert result.data["overall_verdict"]["flagged_cards"] == []

    @pytest.mark.asyncio
    async def test_missing_requester_is_rejected(self, orchestrator, make_deck, publish_store, generator):
        deck_id = make_deck(2)

        result = await orchestrator.review_deck(deck_id, None)

        assert result.status == 400
        assert result.message == "Moderation review failed: INVALID_USER_ID"
        assert generator.calls == []
        assert publish_store.get_by_deck_id(deck_id) is None

    @pytest.mark.asyncio
    async def test_not_found_is_exposed(self, orchestrator):
        result = await orchestrator.review_deck("missing", "user-1")

        assert result.status == 404
        assert result.message == "Moderation review failed: DECK_NOT_FOUND"

    @pytest.mark.asyncio
    async def test_ai_failure_is_server_error(self, orchestrator, make_deck, generator):
        generator.error = UpstreamError("AI_GENERATION_FAILED")

        result = await orchestrator.review_deck(make_deck(2), "user-1")

        assert result.status == 500
        assert result.message == "A server-side error has occurred"
