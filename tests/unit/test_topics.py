"""Testes dos buckets de tópicos e detectores de intenção."""

from __future__ import annotations

import pytest

from sales_hearing.application.topics import (
    CLOSING_QUESTION,
    OPENING_QUESTION,
    QUALITATIVE_QUESTIONS,
    SLOT_QUESTIONS,
    ActionTense,
    analyze_action_tense,
    covered_topics,
    is_stop_request,
    is_topic_duplicate,
    is_undecided_answer,
    opening_question,
    target_required_slot,
    topics_of,
)


class TestTopicBuckets:
    @pytest.mark.parametrize("slot", list(SLOT_QUESTIONS))
    def test_slot_questions_touch_exactly_their_bucket(self, slot: str) -> None:
        assert topics_of(SLOT_QUESTIONS[slot]) == {slot}

    @pytest.mark.parametrize("bucket", list(QUALITATIVE_QUESTIONS))
    def test_qualitative_questions_touch_exactly_their_bucket(self, bucket: str) -> None:
        assert topics_of(QUALITATIVE_QUESTIONS[bucket]) == {bucket}

    def test_opening_and_closing_touch_no_bucket(self) -> None:
        assert topics_of(OPENING_QUESTION) == frozenset()
        assert topics_of(CLOSING_QUESTION) == frozenset()

    def test_english_keywords(self) -> None:
        assert "budget" in topics_of("What was the budget?")
        assert "participants" in topics_of("Who attended the meeting?")

    def test_covered_topics_is_union(self) -> None:
        covered = covered_topics([SLOT_QUESTIONS["budget"], SLOT_QUESTIONS["schedule"]])
        assert covered == {"budget", "schedule"}


class TestTopicDuplicate:
    def test_exact_text_is_duplicate(self) -> None:
        assert is_topic_duplicate(CLOSING_QUESTION, [OPENING_QUESTION, CLOSING_QUESTION])

    def test_rephrased_question_on_covered_bucket(self) -> None:
        asked = [SLOT_QUESTIONS["budget"]]
        assert is_topic_duplicate("費用感はどれくらいでしたか？", asked)

    def test_new_bucket_is_not_duplicate(self) -> None:
        asked = [SLOT_QUESTIONS["budget"]]
        assert not is_topic_duplicate(SLOT_QUESTIONS["schedule"], asked)

    def test_partial_overlap_is_not_duplicate(self) -> None:
        asked = [SLOT_QUESTIONS["budget"]]
        assert not is_topic_duplicate("予算とスケジュールの感触はどうでしたか？", asked)

    def test_question_without_bucket_only_duplicates_by_text(self) -> None:
        assert not is_topic_duplicate("ほかに何かありますか？", [OPENING_QUESTION])


class TestIntentDetectors:
    @pytest.mark.parametrize(
        "answer", ["もう終わりにしたいです", "これで以上です", "that's all", "Please stop"]
    )
    def test_stop_requests(self, answer: str) -> None:
        assert is_stop_request(answer)

    @pytest.mark.parametrize("answer", ["予算は約1000万円です", "次回はデモを行います"])
    def test_regular_answers_are_not_stop(self, answer: str) -> None:
        assert not is_stop_request(answer)

    @pytest.mark.parametrize("answer", ["まだ決まっていません", "未定です", "TBD", "not decided yet"])
    def test_undecided_answers(self, answer: str) -> None:
        assert is_undecided_answer(answer)

    def test_target_required_slot(self) -> None:
        assert target_required_slot(SLOT_QUESTIONS["budget"]) == "budget"
        assert target_required_slot(QUALITATIVE_QUESTIONS["reaction"]) is None
        assert target_required_slot("予算とスケジュールは？") is None

    def test_action_tense(self) -> None:
        assert analyze_action_tense("製品の説明をしました") is ActionTense.PAST
        assert analyze_action_tense("来週デモを実施する予定です") is ActionTense.FUTURE
        assert analyze_action_tense("説明しました。来週また伺う予定です") is ActionTense.MIXED
        assert analyze_action_tense("はい") is ActionTense.NONE


class TestOpeningQuestion:
    def test_generic_opening_without_reference(self) -> None:
        assert opening_question(None) == OPENING_QUESTION
        assert opening_question({}) == OPENING_QUESTION

    def test_mentions_customer_from_reference(self) -> None:
        question = opening_question({"customer_name": "株式会社ABC"})
        assert "株式会社ABC" in question
