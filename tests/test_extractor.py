"""Tests for rule extraction from template files."""

from lootdb.settings.types import DEFAULT_ENTITY_TYPES, DEFAULT_REFERENCE_TABLES
from lootdb.templates import (
    Discovered,
    RuleExtractor,
    Skeleton,
    extract_reference_table,
    extract_slot_mapping,
    reduce_results,
)

AFFIXES = DEFAULT_ENTITY_TYPES[0]
UNIQUES = DEFAULT_ENTITY_TYPES[1]
COLORS = DEFAULT_REFERENCE_TABLES[0]


class TestRuleClassification:
    """Test skeleton vs discovered classification."""

    def test_placeholder_label_is_skeleton(self, corpus) -> None:
        """Test 'Affix ID: N' becomes a Skeleton with id N."""
        path = corpus.write_rules("affixes/a.xml", [corpus.affix_rule("Affix ID: 140", 140)])

        result = RuleExtractor(AFFIXES).extract_file(path)

        assert result.entries == (Skeleton(id=140, rule_index=0),)
        assert not result.failed
        assert result.rule_count == 1

    def test_placeholder_is_case_insensitive(self, corpus) -> None:
        """Test placeholder matching ignores case and surrounding spaces."""
        path = corpus.write_rules("affixes/a.xml", [corpus.affix_rule("  affix id:12 ", 12)])

        result = RuleExtractor(AFFIXES).extract_file(path)

        assert isinstance(result.entries[0], Skeleton)
        assert result.entries[0].id == 12

    def test_filled_affix_rule_takes_id_from_condition(self, corpus) -> None:
        """Test a renamed rule reads its id from the affix condition."""
        path = corpus.write_rules(
            "affixes/a.xml", [corpus.affix_rule("+# to Minion Damage", 140)]
        )

        result = RuleExtractor(AFFIXES).extract_file(path)

        assert result.entries == (Discovered(id=140, name="+# to Minion Damage", rule_index=0),)

    def test_filled_unique_rule_takes_id_from_unique_condition(self, corpus) -> None:
        """Test unique rules read the UniqueId element."""
        path = corpus.write_rules("uniques/u.xml", [corpus.unique_rule("Bastion of Honour", 31)])

        result = RuleExtractor(UNIQUES).extract_file(path)

        assert result.entries == (Discovered(id=31, name="Bastion of Honour", rule_index=0),)

    def test_placeholder_of_other_type_is_discovered_name(self, corpus) -> None:
        """Test 'Unique ID: 3' in an affix template is not an affix placeholder."""
        path = corpus.write_rules("affixes/a.xml", [corpus.affix_rule("Unique ID: 3", 3)])

        result = RuleExtractor(AFFIXES).extract_file(path)

        assert isinstance(result.entries[0], Discovered)


class TestMalformedInput:
    """Test recoverable parse errors."""

    def test_rule_with_several_affix_ids_is_skipped(self, corpus) -> None:
        """Test a filled rule listing two ids is skipped with a parse error."""
        path = corpus.write_rules(
            "affixes/a.xml",
            [
                corpus.affix_rule("Ambiguous", 1, 2),
                corpus.affix_rule("Health", 3),
            ],
        )

        result = RuleExtractor(AFFIXES).extract_file(path)

        assert [entry.id for entry in result.entries] == [3]
        assert len(result.issues) == 1
        issue = result.issues[0]
        assert issue.is_error
        assert issue.category == "parse-error"
        assert "rule #0" in issue.message
        assert not result.failed

    def test_rule_without_condition_is_skipped(self, corpus) -> None:
        """Test a filled rule without condition block is reported."""
        rule = "    <Rule><nameOverride>Lonely</nameOverride></Rule>"
        path = corpus.write_rules("affixes/a.xml", [rule])

        result = RuleExtractor(AFFIXES).extract_file(path)

        assert result.entries == ()
        assert result.issues[0].category == "parse-error"

    def test_negative_condition_id_is_skipped(self, corpus) -> None:
        """Test a filled rule with a negative affix id is a parse error."""
        path = corpus.write_rules(
            "affixes/a.xml",
            [corpus.affix_rule("Broken", -3), corpus.affix_rule("Health", 3)],
        )

        result = RuleExtractor(AFFIXES).extract_file(path)

        assert [entry.id for entry in result.entries] == [3]
        assert result.issues[0].category == "parse-error"
        assert "non-negative" in result.issues[0].message

    def test_rule_without_label_is_ignored(self, corpus) -> None:
        """Test rules with no nameOverride produce nothing."""
        rule = "    <Rule><type>HIDE</type></Rule>"
        path = corpus.write_rules("affixes/a.xml", [rule])

        result = RuleExtractor(AFFIXES).extract_file(path)

        assert result.entries == ()
        assert result.issues == ()

    def test_invalid_xml_fails_file_only(self, corpus) -> None:
        """Test an unparsable file is reported and marked failed."""
        path = corpus.write("affixes/broken.xml", "<ItemFilter><rules><Rule>")

        result = RuleExtractor(AFFIXES).extract_file(path)

        assert result.failed
        assert result.entries == ()
        assert result.issues[0].category == "parse-error"
        assert "broken.xml" in result.issues[0].message

    def test_wrong_root_element_fails_file(self, corpus) -> None:
        """Test a well-formed document that is not a filter is rejected."""
        path = corpus.write("affixes/other.xml", "<Settings><rules/></Settings>")

        result = RuleExtractor(AFFIXES).extract_file(path)

        assert result.failed


class TestSameFileDuplicates:
    """Test first-wins handling inside one file."""

    def test_conflicting_names_keep_first(self, corpus) -> None:
        """Test two names for one id keep the first and warn with both."""
        path = corpus.write_rules(
            "affixes/a.xml",
            [
                corpus.affix_rule("Fire Damage", 5),
                corpus.affix_rule("Cold Damage", 5),
            ],
        )

        result = RuleExtractor(AFFIXES).extract_file(path)

        assert result.entries == (Discovered(id=5, name="Fire Damage", rule_index=0),)
        assert len(result.issues) == 1
        warning = result.issues[0]
        assert warning.category == "duplicate-rule"
        assert not warning.is_error
        assert "Fire Damage" in warning.message and "Cold Damage" in warning.message

    def test_discovered_replaces_earlier_skeleton(self, corpus) -> None:
        """Test a filled rule wins over a placeholder for the same id."""
        path = corpus.write_rules(
            "affixes/a.xml",
            [
                corpus.affix_rule("Affix ID: 9", 9),
                corpus.affix_rule("Void Penetration", 9),
            ],
        )

        result = RuleExtractor(AFFIXES).extract_file(path)

        assert result.entries == (Discovered(id=9, name="Void Penetration", rule_index=1),)

    def test_identical_duplicates_are_silent(self, corpus) -> None:
        """Test repeating the same name does not warn."""
        path = corpus.write_rules(
            "affixes/a.xml",
            [corpus.affix_rule("Mana", 4), corpus.affix_rule("Mana", 4)],
        )

        result = RuleExtractor(AFFIXES).extract_file(path)

        assert len(result.entries) == 1
        assert result.issues == ()


class TestCrossFileReduction:
    """Test reduction of per-file results."""

    def test_reduction_uses_sorted_file_order(self, corpus) -> None:
        """Test the alphabetically first file wins a name conflict."""
        extractor = RuleExtractor(AFFIXES)
        second = extractor.extract_file(
            corpus.write_rules("affixes/b.xml", [corpus.affix_rule("Cold Damage", 5)])
        )
        first = extractor.extract_file(
            corpus.write_rules("affixes/a.xml", [corpus.affix_rule("Fire Damage", 5)])
        )

        candidates, issues = reduce_results("affixes", [second, first])

        assert candidates == {5: "Fire Damage"}
        assert [issue.category for issue in issues] == ["conflicting-name"]

    def test_skeleton_never_overwrites_name(self, corpus) -> None:
        """Test a placeholder in a later file keeps the discovered name."""
        extractor = RuleExtractor(AFFIXES)
        named = extractor.extract_file(
            corpus.write_rules("affixes/a.xml", [corpus.affix_rule("Health", 1)])
        )
        skeleton = extractor.extract_file(
            corpus.write_rules(
                "affixes/b.xml",
                [corpus.affix_rule("Affix ID: 1", 1), corpus.affix_rule("Affix ID: 2", 2)],
            )
        )

        candidates, issues = reduce_results("affixes", [skeleton, named])

        assert candidates == {1: "Health", 2: None}
        assert issues == []


class TestReferenceTables:
    """Test reference table and master template extraction."""

    def test_reference_table_reads_codes(self, corpus) -> None:
        """Test color codes and labels are paired."""
        result = extract_reference_table(corpus.root / "Colors.xml", COLORS)

        assert result.entries == {0: "White", 7: "Red"}
        assert not result.failed

    def test_reference_duplicate_code_warns(self, corpus) -> None:
        """Test a code with two labels keeps the first."""
        path = corpus.write_rules(
            "Colors.xml",
            [
                corpus.reference_rule("Red", "color", 7),
                corpus.reference_rule("Crimson", "color", 7),
            ],
        )

        result = extract_reference_table(path, COLORS)

        assert result.entries == {7: "Red"}
        assert result.issues[0].category == "duplicate-reference"

    def test_slot_mapping(self, corpus) -> None:
        """Test idol and item affix lists from the master template."""
        path = corpus.write_master(idol=[1, 2], item=[3])

        slots, issues = extract_slot_mapping(path)

        assert slots == {1: "idol", 2: "idol", 3: "item"}
        assert issues == []
