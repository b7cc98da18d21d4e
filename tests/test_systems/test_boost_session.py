"""Tests for the boost skill session."""

import copy

import pytest

from compskills.game.interfaces import WarningKind
from compskills.game.systems.boost import BoostSkillSession, ComplementSlot


@pytest.fixture
async def session(registry, party_tokens):
    """Boost session with Aldric as primary character."""
    boost = BoostSkillSession(registry, party_tokens)
    await boost.prepare()
    return boost


class FailingSink:
    """Result sink that cannot deliver."""

    async def create(self, message):
        raise ConnectionError("chat unavailable")


class TestBoostState:
    """Test state transitions of the boost calculator."""

    @pytest.mark.asyncio
    async def test_initial_primary_is_first_token(self, session):
        """Test the first selected token starts as primary."""
        assert session.calc_state.primary_actor_id == "t-aldric"
        assert session.calc_state.primary_skill_name is None

    @pytest.mark.asyncio
    async def test_change_primary_actor_clears_choices(self, session):
        """Test switching the primary character resets skill choices."""
        session.change_primary_skill("Climbing")
        session.add_primary_complement()
        session.change_other_complement("t-brenna", "Tracking")

        session.change_primary_actor("t-brenna")

        assert session.calc_state.primary_actor_id == "t-brenna"
        assert session.calc_state.primary_skill_name is None
        assert session.calc_state.primary_actor_skills == []
        assert session.calc_state.other_actor_skills == {}

    @pytest.mark.asyncio
    async def test_disabling_primary_moves_to_first_enabled(self, session):
        """Test a disabled primary character is replaced."""
        session.change_primary_skill("Climbing")
        session.toggle_participant("t-aldric", False)

        assert session.calc_state.primary_actor_id == "t-brenna"
        assert session.calc_state.primary_skill_name is None

    @pytest.mark.asyncio
    async def test_complement_rows(self, session):
        """Test adding, filling and deleting primary complement rows."""
        session.add_primary_complement()
        session.add_primary_complement()
        session.change_primary_complement(0, "Swimming")
        session.change_primary_complement(1, "Lore (Dragons)")

        assert session.calc_state.primary_actor_skills == [
            ComplementSlot("Swimming", 2),
            ComplementSlot("Lore (Dragons)", 4),
        ]

        session.delete_primary_complement(0)
        assert session.calc_state.primary_actor_skills == [ComplementSlot("Lore (Dragons)", 4)]

    @pytest.mark.asyncio
    async def test_complement_row_out_of_range(self, session):
        """Test editing a missing row is ignored."""
        session.change_primary_complement(3, "Swimming")
        session.delete_primary_complement(3)
        assert session.calc_state.primary_actor_skills == []

    @pytest.mark.asyncio
    async def test_unknown_complement_has_no_ranks(self, session):
        """Test a skill the character lacks contributes no ranks."""
        session.add_primary_complement()
        session.change_primary_complement(0, "Tracking")
        assert session.calc_state.primary_actor_skills[0].ranks == 0


class TestBoostCalculation:
    """Test the boost result built from session state."""

    @pytest.mark.asyncio
    async def test_full_calculation(self, session):
        """Test primary bonus plus helpers with diminishing returns."""
        session.change_primary_skill("Climbing")
        session.add_primary_complement()
        session.change_primary_complement(0, "Lore (Dragons)")
        session.change_other_complement("t-brenna", "Climbing")
        session.change_other_complement("t-corin", "Climbing")

        result = session.calculate()

        assert result.primary_bonus == 45
        assert [(e.source_label, e.ranks, e.bonus) for e in result.breakdown] == [
            ("Brenna's Climbing", 8, 8),
            ("Aldric's Lore (Dragons)", 4, 2),
            ("Corin's Climbing", 4, 1),
        ]
        assert result.complement_bonus == 11
        assert result.total == 56

    @pytest.mark.asyncio
    async def test_no_primary_skill_gives_zero_primary(self, session):
        """Test the calculation runs without a primary skill."""
        session.change_other_complement("t-brenna", "Tracking")
        result = session.calculate()
        assert result.primary_bonus == 0
        assert result.total == 6

    @pytest.mark.asyncio
    async def test_disabled_helper_ignored(self, session):
        """Test disabled helpers add nothing."""
        session.change_primary_skill("Climbing")
        session.change_other_complement("t-brenna", "Tracking")
        session.toggle_participant("t-brenna", False)

        assert session.calculate().breakdown == []

    @pytest.mark.asyncio
    async def test_ineligible_primary_skill_not_counted(self, session):
        """Test a non-rollable skill gives no primary bonus."""
        session.change_primary_actor("t-corin")
        session.change_primary_skill("Spell Mastery")
        assert session.primary_bonus() == 0

    @pytest.mark.asyncio
    async def test_context(self, session):
        """Test presentation data."""
        session.change_primary_skill("Climbing")
        context = session.context()

        assert context.primary_actor_id == "t-aldric"
        assert [g.label for g in context.primary_skill_options] == [
            "Athletic",
            "Influence",
            "Lore",
        ]
        assert [p.id for p in context.other_participants] == ["t-brenna", "t-corin"]
        assert context.bonus_for_selected_skill == {
            "t-aldric": 45,
            "t-brenna": 40,
            "t-corin": 25,
        }
        assert context.calculation.total == 45
        corin_options = context.other_complement_options["t-corin"]
        assert [s.name for g in corin_options for s in g.skills] == ["Climbing"]


class TestBoostSubmit:
    """Test publishing boost results."""

    @pytest.mark.asyncio
    async def test_refused_without_primary_skill(self, session, users, chat_log):
        """Test submission is refused and state is untouched."""
        session.add_primary_complement()
        session.change_primary_complement(0, "Swimming")
        before = copy.deepcopy(session.calc_state)

        result = await session.submit(users[0], users, chat_log)

        assert result.success is False
        assert result.warning == WarningKind.NO_SELECTION
        assert chat_log.messages == []
        assert session.calc_state == before

    @pytest.mark.asyncio
    async def test_submit_publishes_message(self, session, users, chat_log):
        """Test a valid submission whispers owners and GMs."""
        session.change_primary_skill("Climbing")
        session.change_other_complement("t-brenna", "Climbing")

        result = await session.submit(users[0], users, chat_log)

        assert result.success is True
        assert len(chat_log.messages) == 1
        message = chat_log.messages[0]
        assert message.whisper == ["alice", "bob", "gm"]
        assert message.flags["compskills"] == {
            "is_calc": True,
            "roll_type": "boost",
            "actor_id": "t-aldric",
            "skill_name": "Climbing",
            "bonus": 53,
        }
        assert "Brenna's Climbing" in message.content
        assert "Total: +53" in message.content

    @pytest.mark.asyncio
    async def test_delivery_failure_reported(self, session, users):
        """Test a failing sink is reported instead of raised."""
        session.change_primary_skill("Climbing")
        result = await session.submit(users[0], users, FailingSink())
        assert result.success is False


class TestBoostAddParticipants:
    """Test adding characters to a running session."""

    @pytest.mark.asyncio
    async def test_add_new_and_existing(self, registry, party_tokens):
        """Test added characters join once."""
        session = BoostSkillSession(registry, party_tokens[:1])
        await session.prepare()

        await session.add_participants(party_tokens[1:])
        await session.add_participants(party_tokens[1:2])

        assert [p.id for p in registry] == ["t-aldric", "t-brenna", "t-corin"]
        assert [t.id for t in session.tokens] == ["t-aldric", "t-brenna", "t-corin"]
