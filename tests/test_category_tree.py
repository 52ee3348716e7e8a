"""Tests for the category hierarchy and the table rows built from it."""
import unittest
from decimal import Decimal
from types import SimpleNamespace

from decor_admin.utils.category_tree import (
    ExpansionState,
    ExpansionStatus,
    active_label,
    build_category_hierarchy,
    build_category_rows,
    category_rank,
    visibility_label,
)


def make_category(id, name=None, parent_category_id=None, rank=0, **extra):
    values = {
        "id": id,
        "name": name or f"Categoría {id}",
        "handle": f"cat-{id}",
        "parent_category_id": parent_category_id,
        "rank": rank,
        "is_active": True,
        "is_internal": False,
    }
    values.update(extra)
    return SimpleNamespace(**values)


def furniture_catalog():
    return [
        make_category(1, "Muebles", rank=0),
        make_category(2, "Sillas", parent_category_id=1, rank=1),
        make_category(3, "Mesas", parent_category_id=1, rank=0),
        make_category(4, "Decoración", rank=1),
    ]


def names(items):
    return [item.name for item in items]


def row_names(rows):
    return [row["name"] for row in rows]


class BuildCategoryHierarchyTests(unittest.TestCase):
    """Grouping flat categories into roots and children"""

    def test_furniture_example(self):
        nodes = build_category_hierarchy(furniture_catalog())

        self.assertEqual(names(node["category"] for node in nodes), ["Muebles", "Decoración"])
        self.assertTrue(nodes[0]["is_parent"])
        self.assertEqual(names(nodes[0]["children"]), ["Mesas", "Sillas"])
        self.assertFalse(nodes[1]["is_parent"])
        self.assertEqual(nodes[1]["children"], [])

    def test_empty_input(self):
        self.assertEqual(build_category_hierarchy([]), [])
        self.assertEqual(build_category_rows([], ExpansionState()), [])

    def test_every_record_appears_exactly_once(self):
        records = furniture_catalog() + [
            make_category(5, parent_category_id=4, rank=3),
            make_category(6, parent_category_id=99),
            make_category(7, parent_category_id=2),
        ]
        nodes = build_category_hierarchy(records)

        seen = []
        for node in nodes:
            seen.append(node["category"].id)
            seen.extend(child.id for child in node["children"])
        self.assertEqual(sorted(seen), [record.id for record in records])
        self.assertEqual(len(seen), len(set(seen)))

    def test_equal_ranks_keep_input_order(self):
        records = [
            make_category(10, "B", rank=2),
            make_category(11, "A", rank=1),
            make_category(12, "C", rank=2),
            make_category(13, "child-x", parent_category_id=11, rank=5),
            make_category(14, "child-y", parent_category_id=11, rank=5),
            make_category(15, "child-z", parent_category_id=11, rank=4),
        ]
        nodes = build_category_hierarchy(records)

        self.assertEqual(names(node["category"] for node in nodes), ["A", "B", "C"])
        self.assertEqual(names(nodes[0]["children"]), ["child-z", "child-x", "child-y"])

    def test_dangling_parent_becomes_root(self):
        records = [
            make_category(1, "Muebles", rank=1),
            make_category(2, "Huérfana", parent_category_id=404, rank=0),
        ]
        nodes = build_category_hierarchy(records)

        self.assertEqual(names(node["category"] for node in nodes), ["Huérfana", "Muebles"])
        self.assertTrue(all(not node["is_parent"] for node in nodes))

    def test_grandchildren_are_not_nested_below_children(self):
        records = [
            make_category(1, "Muebles"),
            make_category(2, "Sillas", parent_category_id=1),
            make_category(3, "Sillas de oficina", parent_category_id=2),
        ]
        nodes = build_category_hierarchy(records)

        self.assertEqual(names(node["category"] for node in nodes), ["Muebles", "Sillas de oficina"])
        self.assertEqual(names(nodes[0]["children"]), ["Sillas"])
        self.assertFalse(nodes[1]["is_parent"])

    def test_parent_cycle_terminates(self):
        records = [
            make_category(1, "A", parent_category_id=2),
            make_category(2, "B", parent_category_id=1),
            make_category(3, "C", parent_category_id=3),
        ]
        nodes = build_category_hierarchy(records)

        self.assertEqual(names(node["category"] for node in nodes), ["A", "B", "C"])
        self.assertTrue(all(node["children"] == [] for node in nodes))

    def test_unusable_ranks_sort_as_zero(self):
        records = [
            make_category(1, "uno", rank=1),
            make_category(2, "sin rango", rank=None),
            make_category(3, "texto", rank="abc"),
            make_category(4, "negativo", rank=-1),
            make_category(5, "texto numérico", rank="0.5"),
        ]
        del records[1].rank
        nodes = build_category_hierarchy(records)

        self.assertEqual(
            names(node["category"] for node in nodes),
            ["negativo", "sin rango", "texto", "texto numérico", "uno"],
        )

    def test_category_rank_defaults(self):
        self.assertEqual(category_rank(make_category(1, rank=True)), 0)
        self.assertEqual(category_rank(make_category(1, rank=float("nan"))), 0)
        self.assertEqual(category_rank(make_category(1, rank=" 7 ")), 7)
        self.assertEqual(category_rank(make_category(1, rank=[1])), 0)
        self.assertEqual(category_rank(SimpleNamespace(id=1)), 0)

    def test_large_integer_ranks_keep_exact_order(self):
        records = [
            make_category(1, "después", rank=2**60 + 1),
            make_category(2, "antes", rank=2**60),
        ]
        nodes = build_category_hierarchy(records)

        self.assertEqual([node["category"].id for node in nodes], [2, 1])
        self.assertEqual(category_rank(records[0]), 2**60 + 1)

    def test_decimal_ranks_are_used(self):
        self.assertEqual(category_rank(make_category(1, rank=Decimal("5"))), 5)
        self.assertEqual(category_rank(make_category(1, rank=Decimal("NaN"))), 0)
        records = [
            make_category(1, "cinco", rank=Decimal("5")),
            make_category(2, "dos y medio", rank=Decimal("2.5")),
            make_category(3, "tres", rank=3),
        ]
        nodes = build_category_hierarchy(records)

        self.assertEqual(
            names(node["category"] for node in nodes), ["dos y medio", "tres", "cinco"]
        )

    def test_parent_listed_as_root_does_not_take_children(self):
        records = [
            make_category(1, "A", parent_category_id=2),
            make_category(2, "B", parent_category_id=1),
            make_category(3, "C", parent_category_id=1),
        ]
        nodes = build_category_hierarchy(records)

        self.assertEqual(names(node["category"] for node in nodes), ["A", "B", "C"])
        self.assertTrue(all(not node["is_parent"] for node in nodes))
        self.assertTrue(all(node["children"] == [] for node in nodes))

    def test_string_ids_are_not_coerced(self):
        records = [
            make_category("1", "raíz"),
            make_category("2", "hija", parent_category_id="1"),
            make_category("3", "otra", parent_category_id=1),
        ]
        nodes = build_category_hierarchy(records)

        self.assertEqual(names(nodes[0]["children"]), ["hija"])
        self.assertEqual(names(node["category"] for node in nodes), ["raíz", "otra"])

    def test_building_twice_gives_the_same_result(self):
        records = furniture_catalog()
        first = build_category_hierarchy(records)
        second = build_category_hierarchy(records)

        self.assertEqual(first, second)
        self.assertEqual(names(records), ["Muebles", "Sillas", "Mesas", "Decoración"])

    def test_accepts_a_generator(self):
        nodes = build_category_hierarchy(record for record in furniture_catalog())
        self.assertEqual(len(nodes), 2)
        self.assertEqual(len(nodes[0]["children"]), 2)


class ExpansionStateTests(unittest.TestCase):
    """Expand/collapse bookkeeping"""

    def test_starts_collapsed(self):
        state = ExpansionState()
        self.assertFalse(state.is_expanded(1))
        self.assertIs(state.state_of(1), ExpansionStatus.COLLAPSED)
        self.assertEqual(len(state), 0)

    def test_toggle_flips_state(self):
        state = ExpansionState()
        state.toggle(1)
        self.assertTrue(state.is_expanded(1))
        self.assertIs(state.state_of(1), ExpansionStatus.EXPANDED)
        state.toggle(1)
        self.assertFalse(state.is_expanded(1))

    def test_toggled_returns_a_copy(self):
        state = ExpansionState([1])
        other = state.toggled(2)

        self.assertEqual(set(state), {1})
        self.assertEqual(set(other), {1, 2})
        self.assertEqual(set(other.toggled(1)), {2})

    def test_query_round_trip(self):
        state = ExpansionState.from_query("4, 1,x,,1")
        self.assertEqual(set(state), {1, 4})
        self.assertEqual(state.to_query(), "1,4")
        self.assertEqual(ExpansionState.from_query(None).to_query(), "")
        self.assertEqual(ExpansionState.from_query("").to_query(), "")


class BuildCategoryRowsTests(unittest.TestCase):
    """Rows shown in the category table"""

    def setUp(self):
        self.nodes = build_category_hierarchy(furniture_catalog())

    def test_collapsed_rows(self):
        rows = build_category_rows(self.nodes, ExpansionState())

        self.assertEqual(row_names(rows), ["Muebles", "Decoración"])
        self.assertEqual([row["depth"] for row in rows], [0, 0])
        self.assertTrue(rows[0]["is_parent"])
        self.assertFalse(rows[0]["is_expanded"])
        self.assertFalse(rows[1]["is_parent"])

    def test_expanded_rows(self):
        rows = build_category_rows(self.nodes, ExpansionState([1]))

        self.assertEqual(row_names(rows), ["Muebles", "Mesas", "Sillas", "Decoración"])
        self.assertEqual([row["depth"] for row in rows], [0, 1, 1, 0])
        self.assertTrue(rows[0]["is_expanded"])
        self.assertFalse(rows[1]["is_parent"])
        self.assertFalse(rows[2]["is_parent"])

    def test_toggling_back_restores_collapsed_rows(self):
        state = ExpansionState()
        collapsed = build_category_rows(self.nodes, state)
        state.toggle(1)
        self.assertEqual(len(build_category_rows(self.nodes, state)), 4)
        state.toggle(1)
        self.assertEqual(build_category_rows(self.nodes, state), collapsed)

    def test_expanding_a_root_without_children_adds_nothing(self):
        rows = build_category_rows(self.nodes, ExpansionState([4, 999]))

        self.assertEqual(row_names(rows), ["Muebles", "Decoración"])
        self.assertFalse(rows[1]["is_expanded"])

    def test_row_count_matches_expanded_children(self):
        records = furniture_catalog() + [
            make_category(5, "Jarrones", parent_category_id=4, rank=0),
            make_category(6, "Espejos", parent_category_id=4, rank=1),
            make_category(7, "Iluminación", rank=2),
        ]
        nodes = build_category_hierarchy(records)
        for expanded in ([], [1], [4], [1, 4], [1, 4, 7]):
            state = ExpansionState(expanded)
            expected = len(nodes) + sum(
                len(node["children"])
                for node in nodes
                if node["is_parent"] and state.is_expanded(node["category"].id)
            )
            self.assertEqual(len(build_category_rows(nodes, state)), expected)

    def test_toggle_only_affects_its_own_rows(self):
        records = furniture_catalog() + [make_category(5, "Jarrones", parent_category_id=4)]
        nodes = build_category_hierarchy(records)
        state = ExpansionState([4])

        before = row_names(build_category_rows(nodes, state))
        state.toggle(1)
        after = row_names(build_category_rows(nodes, state))

        self.assertEqual(before, ["Muebles", "Decoración", "Jarrones"])
        self.assertEqual(after, ["Muebles", "Mesas", "Sillas", "Decoración", "Jarrones"])

    def test_labels(self):
        records = [
            make_category(1, "pública activa"),
            make_category(2, "privada inactiva", is_active=False, is_internal=True),
        ]
        rows = build_category_rows(build_category_hierarchy(records), ExpansionState())

        self.assertEqual(
            [(row["active_label"], row["visibility_label"]) for row in rows],
            [("Activa", "Pública"), ("Inactiva", "Privada")],
        )
        self.assertEqual(rows[0]["handle"], "cat-1")

    def test_label_helpers(self):
        self.assertEqual(active_label(True), "Activa")
        self.assertEqual(active_label(False), "Inactiva")
        self.assertEqual(visibility_label(False), "Pública")
        self.assertEqual(visibility_label(True), "Privada")


if __name__ == "__main__":
    unittest.main()
