"""
Tests for the completion policies and the terminal-phrase check.
"""

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from survey.prompts import build_system_prompt
from survey.prompts.survey_prompt import CONCLUDE_INSTRUCTION, FINAL_QUESTION_INSTRUCTION
from survey.session.completion import (
    Advice,
    DurationPolicy,
    KeywordCoveragePolicy,
    covered_topics,
    get_policy,
    is_conclusion,
)


class TestCoveredTopics:
    def test_each_category(self):
        assert covered_topics(["I'm the CTO"]) == {"role_team"}
        assert covered_topics(["fully remote"]) == {"location"}
        assert covered_topics(["we live in Slack"]) == {"tools"}
        assert covered_topics(["Claude for code review"]) == {"ai_usage"}
        assert covered_topics(["seed-stage fintech"]) == {"stage_industry"}

    def test_case_insensitive(self):
        assert covered_topics(["SLACK and NOTION"]) == {"tools"}

    def test_word_boundaries(self):
        # "ai" inside "said", "cto" inside "director", "seed" inside "seeds"
        assert covered_topics(["She said the director seeds it"]) == set()

    def test_team_size_phrase(self):
        assert "role_team" in covered_topics(["a 5-person team"])
        assert "role_team" in covered_topics(["about 12 engineers"])

    def test_across_turns(self):
        topics = covered_topics(["CTO", "remote", "Slack"])
        assert topics == {"role_team", "location", "tools"}


class TestKeywordCoveragePolicy:
    def test_concludes_with_four_categories_over_three_turns(self):
        policy = KeywordCoveragePolicy()
        texts = ["I'm the CTO, we're remote", "We use Slack", "And Claude every day"]
        assert policy.should_conclude(texts)
        assert policy.advise(texts, 0) == Advice(should_conclude=True)

    def test_two_categories_in_two_turns_is_not_enough(self):
        policy = KeywordCoveragePolicy()
        assert not policy.should_conclude(["CTO", "remote"])

    def test_single_rich_turn_does_not_conclude(self):
        policy = KeywordCoveragePolicy()
        text = "We're a 5-person remote fintech team using Linear and Slack, and we use Claude daily"
        assert len(covered_topics([text])) >= 4
        assert not policy.should_conclude([text])
        assert not DurationPolicy().advise([text], 5).should_conclude

    def test_three_turns_but_too_few_categories(self):
        policy = KeywordCoveragePolicy()
        assert not policy.should_conclude(["CTO", "remote", "not sure"])

    def test_never_forces_ending(self):
        assert not KeywordCoveragePolicy().forces_ending(10_000)


class TestDurationPolicy:
    @pytest.mark.parametrize("elapsed,expected", [
        (0, Advice()),
        (49, Advice()),
        (50, Advice(ask_final_question=True)),
        (59, Advice(ask_final_question=True)),
        (60, Advice(should_conclude=True)),
        (95, Advice(should_conclude=True)),
    ])
    def test_advice_by_elapsed(self, elapsed, expected):
        assert DurationPolicy().advise([], elapsed) == expected

    def test_forces_ending_at_outer_boundary(self):
        policy = DurationPolicy()
        assert not policy.forces_ending(59)
        assert policy.forces_ending(60)

    def test_rejects_inverted_windows(self):
        with pytest.raises(ValueError):
            DurationPolicy(wind_down_seconds=30, final_question_seconds=40)


class TestPolicyRegistry:
    def test_lookup_by_name(self):
        assert isinstance(get_policy("content"), KeywordCoveragePolicy)
        assert isinstance(get_policy("duration"), DurationPolicy)

    def test_unknown_name(self):
        with pytest.raises(ValueError):
            get_policy("vibes")


class TestIsConclusion:
    def test_terminal_phrase(self):
        assert is_conclusion("Perfect, thanks for taking the time! 🙏")

    def test_case_insensitive(self):
        assert is_conclusion("PERFECT, THANKS!")

    def test_normal_reply(self):
        assert not is_conclusion("Thanks! What tools do you use?")

    def test_empty(self):
        assert not is_conclusion("")


class TestBuildSystemPrompt:
    def test_plain(self):
        prompt = build_system_prompt()
        assert CONCLUDE_INSTRUCTION not in prompt
        assert FINAL_QUESTION_INSTRUCTION not in prompt

    def test_conclude_wins_over_final_question(self):
        prompt = build_system_prompt(should_conclude=True, ask_final_question=True)
        assert CONCLUDE_INSTRUCTION in prompt
        assert FINAL_QUESTION_INSTRUCTION not in prompt

    def test_final_question(self):
        assert FINAL_QUESTION_INSTRUCTION in build_system_prompt(ask_final_question=True)

    def test_duration_line(self):
        assert "running for 42 seconds" in build_system_prompt(session_duration=42)
