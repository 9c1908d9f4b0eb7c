import pytest

from lexcord.datatypes.staff_datatypes import ConflictSeverity, SeverityThresholds, StaffRank
from lexcord.roles.conflict_history import ConflictHistory
from lexcord.roles.rank_table import DEFAULT_RANKS, RankDefinition, RankTable, score_conflict_severity


THRESHOLDS = SeverityThresholds()


class TestRankTable:
    def test_default_table_is_valid_and_ordered(self):
        table = RankTable()
        assert table.ranks[0] is StaffRank.MANAGING_PARTNER
        assert table.ranks[-1] is StaffRank.PARALEGAL
        assert table.top_level == 6
        assert table.definition(StaffRank.MANAGING_PARTNER).max_count == 1

    def test_aliases_map_to_specific_ranks(self):
        table = RankTable()
        assert table.rank_for_role_name("Partner") is StaffRank.SENIOR_PARTNER
        assert table.rank_for_role_name("Associate") is StaffRank.JUNIOR_ASSOCIATE
        assert table.rank_for_role_name("Client") is None
        assert table.is_staff_role("Member") is False

    def test_duplicate_display_name_rejected(self):
        definitions = DEFAULT_RANKS + (
            RankDefinition(StaffRank.PARALEGAL, 0, 1, frozenset({"Partner"})),
        )
        with pytest.raises(ValueError):
            RankTable(definitions)

    def test_duplicate_level_rejected(self):
        definitions = (
            RankDefinition(StaffRank.MANAGING_PARTNER, 2, 1, frozenset({"Managing Partner"})),
            RankDefinition(StaffRank.PARALEGAL, 2, 10, frozenset({"Paralegal"})),
        )
        with pytest.raises(ValueError, match="level 2"):
            RankTable(definitions)

    def test_staff_roles_of_orders_by_level(self, make_member):
        member = make_member(1, "Paralegal", "Member", "Senior Partner", "Junior Associate")
        roles = RankTable().staff_roles_of(member)
        assert [r.role_name for r in roles] == ["Senior Partner", "Junior Associate", "Paralegal"]
        assert [r.hierarchy_level for r in roles] == [5, 2, 1]


class TestSeverityScoring:
    @pytest.mark.parametrize(
        "levels, expected",
        [
            ([6, 1], ConflictSeverity.HIGH),
            ([6, 5], ConflictSeverity.CRITICAL),
            ([6, 5, 1], ConflictSeverity.CRITICAL),
            ([4, 1], ConflictSeverity.HIGH),
            ([4, 2], ConflictSeverity.MEDIUM),
            ([3, 2], ConflictSeverity.LOW),
            ([5, 5], ConflictSeverity.LOW),
            ([2], ConflictSeverity.LOW),
            ([], ConflictSeverity.LOW),
        ],
    )
    def test_scoring(self, levels, expected):
        assert score_conflict_severity(levels, THRESHOLDS) is expected

    def test_scoring_is_total_over_all_rank_pairs(self):
        levels = [d.level for d in DEFAULT_RANKS]
        for high in levels:
            for low in levels:
                assert score_conflict_severity([high, low], THRESHOLDS) in set(ConflictSeverity)

    def test_custom_thresholds(self):
        strict = SeverityThresholds(high_gap=2, medium_gap=1, senior_level=7)
        assert score_conflict_severity([3, 1], strict) is ConflictSeverity.HIGH
        assert score_conflict_severity([6, 5], strict) is ConflictSeverity.MEDIUM

    def test_inconsistent_thresholds_rejected(self):
        with pytest.raises(ValueError):
            SeverityThresholds(high_gap=2, medium_gap=2)


class TestConflictHistory:
    def test_bounded_per_guild(self):
        from lexcord.datatypes.staff_datatypes import ConflictResolutionResult
        from lexcord.datatypes.discord_datatypes import UserID

        history = ConflictHistory(limit=3)
        for i in range(5):
            history.record(
                "g1",
                ConflictResolutionResult(
                    user_id=UserID(i + 1), resolved=i % 2 == 0, removed_roles=("Paralegal",), kept_role="Senior Partner"
                ),
            )

        entries = history.entries("g1")
        assert [int(e.user_id.to_int()) for e in entries] == [3, 4, 5]
        stats = history.statistics("g1")
        assert stats.total_resolutions == 3
        assert stats.successful_resolutions == 2
        assert stats.failed_resolutions == 1
        assert stats.most_common_conflicts == {"Paralegal": 3}

        history.clear("g1")
        assert history.entries("g1") == []
        assert history.statistics("other").total_resolutions == 0
