"""Tests for incremental model construction.

Tests verify:
- Frequency grid and name validation
- Tag uniqueness across all element kinds and reserved names
- Atomicity of builder calls (a failed call leaves the model unchanged)
- The edge ledger and the model state machine
"""

import numpy as np
import pytest

from powerbalance import (
    EXT,
    REF,
    ConfigurationError,
    DataError,
    DirectAE,
    DirectTCS,
    ElementKind,
    GenericCavity,
    ModelState,
    PowerBalanceModel,
    QueryError,
)
from powerbalance.core.graph import EdgeRecord


@pytest.fixture
def model():
    m = PowerBalanceModel([1e9, 2e9, 3e9], "Test")
    m.add_cavity("C1", "Generic", [6.0, 1.0, 1e6])
    m.add_cavity("C2", "Generic", [6.0, 1.0, 1e6])
    return m


def snapshot_counts(model):
    return (
        model.num_cavities,
        model.num_absorbers,
        model.num_sources,
        model.num_apertures,
        list(model.edges),
    )


# =============================================================================
# Construction
# =============================================================================


class TestConstruction:
    def test_initial_state(self):
        model = PowerBalanceModel(np.linspace(1e9, 2e9, 5), "Box")
        assert model.state is ModelState.BUILDING
        assert model.num_frequencies == 5
        assert model.num_cavities == 0
        assert model.edges == []

    def test_scalar_frequency(self):
        assert PowerBalanceModel(1e9).num_frequencies == 1

    def test_frequencies_read_only(self):
        model = PowerBalanceModel([1e9, 2e9])
        with pytest.raises(ValueError):
            model.frequencies[0] = 5.0

    @pytest.mark.parametrize(
        "frequencies",
        [[], [1e9, 0.0], [-1e9], [1e9, np.nan], [np.inf], [1e9 + 1j], [[1e9, 2e9]]],
    )
    def test_invalid_frequencies(self, frequencies):
        with pytest.raises(ConfigurationError, match="frequencies"):
            PowerBalanceModel(frequencies)

    @pytest.mark.parametrize("name", ["1model", "my model", "", 3])
    def test_invalid_name(self, name):
        with pytest.raises(ConfigurationError, match="identifier"):
            PowerBalanceModel([1e9], name)

    def test_repr(self, model):
        text = repr(model)
        assert "Test" in text
        assert "cavities=2" in text
        assert "building" in text


# =============================================================================
# Tags
# =============================================================================


class TestTags:
    @pytest.mark.parametrize("tag", ["C1", "C2"])
    def test_duplicate_cavity(self, model, tag):
        with pytest.raises(ConfigurationError, match="clashes"):
            model.add_cavity(tag, "Generic", [1.0, 1.0, 1e6])

    def test_tags_unique_across_kinds(self, model):
        model.add_absorber("X", "C1", 1, "AE", [1.0, 0.5])
        with pytest.raises(ConfigurationError, match="clashes"):
            model.add_source("X", "Direct", "C1", [1.0])
        with pytest.raises(ConfigurationError, match="clashes"):
            model.add_aperture("C1", "C1", "C2", "TCS", [1.0, 0.1])

    @pytest.mark.parametrize("tag", [EXT, REF])
    def test_reserved_tags(self, model, tag):
        with pytest.raises(ConfigurationError, match="reserved"):
            model.add_cavity(tag, "Generic", [1.0, 1.0, 1e6])

    @pytest.mark.parametrize("tag", ["2C", "C 1", "", None])
    def test_invalid_identifier(self, model, tag):
        with pytest.raises(ConfigurationError, match="identifier"):
            model.add_absorber(tag, "C1", 1, "AE", [1.0, 0.5])

    @pytest.mark.parametrize("tag", ["class", "None", "lambda"])
    def test_keyword_tag_rejected(self, model, tag):
        before = snapshot_counts(model)
        with pytest.raises(ConfigurationError, match="identifier"):
            model.add_cavity(tag, "Generic", [1.0, 1.0, 1e6])
        with pytest.raises(ConfigurationError, match="identifier"):
            model.add_absorber(tag, "C1", 1, "AE", [1.0, 0.5])
        assert snapshot_counts(model) == before

    def test_keyword_model_name_rejected(self):
        with pytest.raises(ConfigurationError, match="identifier"):
            PowerBalanceModel([1e9], "def")

    @pytest.mark.parametrize("cavity_tag", [["C1"], {"C1": 1}, 3, None, "for"])
    def test_malformed_cavity_reference(self, model, cavity_tag):
        before = snapshot_counts(model)
        with pytest.raises(ConfigurationError, match="Cavity tag"):
            model.add_absorber("AB1", cavity_tag, 1, "AE", [1.0, 0.5])
        with pytest.raises(ConfigurationError, match="Cavity tag"):
            model.add_source("S1", "Direct", cavity_tag, [1.0])
        with pytest.raises(ConfigurationError, match="Cavity tag"):
            model.add_aperture("AP1", cavity_tag, "C2", "TCS", [1.0, 0.1])
        with pytest.raises(ConfigurationError, match="Cavity tag"):
            model.add_aperture("AP1", "C1", cavity_tag, "TCS", [1.0, 0.1])
        assert snapshot_counts(model) == before


# =============================================================================
# Element validation
# =============================================================================


class TestCavities:
    def test_add_by_name(self, model):
        assert model.cavity_tags == ["C1", "C2"]

    def test_add_by_instance(self, model):
        model.add_cavity("C3", GenericCavity(1.0, 1.0, np.inf))
        assert model.cavity_tags[-1] == "C3"

    def test_instance_with_parameters_rejected(self, model):
        with pytest.raises(ConfigurationError, match="omitted"):
            model.add_cavity("C3", GenericCavity(1.0, 1.0, np.inf), [1.0])

    def test_wrong_kind_instance_rejected(self, model):
        with pytest.raises(ConfigurationError, match="Invalid cavity type"):
            model.add_cavity("C3", DirectAE(1.0, 0.5))

    def test_per_frequency_parameter_length(self, model):
        with pytest.raises(ConfigurationError, match="frequency grid"):
            model.add_cavity("C3", "Generic", [1.0, 1.0, [1e6, 2e6]])

    def test_per_frequency_parameter_accepted(self, model):
        model.add_cavity("C3", "Generic", [1.0, 1.0, [1e6, 2e6, 3e6]])
        assert model.num_cavities == 3


class TestAbsorbers:
    def test_unknown_cavity(self, model):
        with pytest.raises(ConfigurationError, match="Unknown cavity"):
            model.add_absorber("AB1", "C9", 1, "AE", [1.0, 0.5])

    def test_not_in_ext(self, model):
        with pytest.raises(ConfigurationError, match="EXT"):
            model.add_absorber("AB1", EXT, 1, "AE", [1.0, 0.5])

    @pytest.mark.parametrize("multiplicity", [0, -1, 1.5, True, "2", np.nan])
    def test_invalid_multiplicity(self, model, multiplicity):
        with pytest.raises(ConfigurationError, match="multiplicity"):
            model.add_absorber("AB1", "C1", multiplicity, "AE", [1.0, 0.5])

    @pytest.mark.parametrize("multiplicity", [3, 3.0, np.int64(3)])
    def test_multiplicity_scales_acs_not_ae(self, multiplicity):
        model = PowerBalanceModel([1e9], "M")
        model.add_cavity("C1", "Generic", [1.0, 1.0, np.inf])
        model.add_absorber("AB1", "C1", multiplicity, "AE", [4.0, 0.5])
        model.add_source("S1", "Direct", "C1", [1.0])
        result = model.solve()
        values, _ = result.get_output("Absorber", "AB1", ["ACS", "AE"])
        np.testing.assert_allclose(values[0], [1.5, 0.5])
        assert result.graph.absorbers["AB1"].multiplicity == 3

    def test_unknown_type(self, model):
        with pytest.raises(ConfigurationError, match="Unknown absorber type"):
            model.add_absorber("AB1", "C1", 1, "Foam", [1.0])

    def test_missing_data_file(self, model, tmp_path):
        with pytest.raises(DataError, match="Cannot open"):
            model.add_absorber("AB1", "C1", 1, "FileACS", [1.0, tmp_path / "none.dat"])
        assert model.num_absorbers == 0

    def test_file_data_must_cover_grid(self, model, write_table):
        path = write_table([(1e9, 1.0), (2e9, 1.0)])
        with pytest.raises(DataError, match="maximum"):
            model.add_absorber("AB1", "C1", 1, "FileAE", [1.0, path])

    def test_file_data_negative_values(self, model, write_table):
        path = write_table([(1e9, -1.0), (3e9, -1.0)])
        with pytest.raises(DataError, match="negative"):
            model.add_absorber("AB1", "C1", 1, "FileACS", [1.0, path])


class TestSources:
    def test_unknown_cavity(self, model):
        with pytest.raises(ConfigurationError, match="Unknown cavity"):
            model.add_source("S1", "Direct", "C9", [1.0])

    def test_not_in_ext(self, model):
        with pytest.raises(ConfigurationError, match="EXT"):
            model.add_source("S1", "Direct", EXT, [1.0])

    def test_negative_power(self, model):
        with pytest.raises(ConfigurationError, match="power"):
            model.add_source("S1", "Direct", "C1", [[1.0, -1.0, 1.0]])

    def test_power_length(self, model):
        with pytest.raises(ConfigurationError, match="power"):
            model.add_source("S1", "Direct", "C1", [[1.0, 1.0]])


class TestApertures:
    def test_to_ext(self, model):
        model.add_aperture("AP1", "C1", EXT, "TCS", [1.0, 0.1])
        assert model.num_apertures == 1

    def test_self_loop(self, model):
        with pytest.raises(ConfigurationError, match="itself"):
            model.add_aperture("AP1", "C1", "C1", "TCS", [1.0, 0.1])

    def test_ext_must_be_second(self, model):
        with pytest.raises(ConfigurationError, match="EXT"):
            model.add_aperture("AP1", EXT, "C1", "TCS", [1.0, 0.1])

    def test_unknown_endpoint(self, model):
        with pytest.raises(ConfigurationError, match="Unknown cavity"):
            model.add_aperture("AP1", "C1", "C9", "TCS", [1.0, 0.1])

    def test_by_instance(self, model):
        model.add_aperture("AP1", "C1", "C2", DirectTCS(1.0, 0.1))
        assert model.num_apertures == 1

    def test_te_above_one(self, model):
        with pytest.raises(ConfigurationError, match="TE"):
            model.add_aperture("AP1", "C1", "C2", "TE", [1.0, 1.2])

    def test_circular_area(self, model):
        model.add_aperture("AP1", "C1", "C2", "Circular", [0.1])
        model.add_source("S1", "Direct", "C1", [1.0])
        result = model.solve()
        assert result.graph.apertures["AP1"].area == pytest.approx(np.pi * 0.01)


# =============================================================================
# Atomicity and ledger
# =============================================================================


class TestAtomicity:
    @pytest.mark.parametrize(
        "call",
        [
            lambda m: m.add_absorber("AB1", "C1", 1, "AE", [1.0, 2.0]),
            lambda m: m.add_absorber("AB1", "C1", 1, "AE", [1.0]),
            lambda m: m.add_source("C2", "Direct", "C1", [1.0]),
            lambda m: m.add_aperture("AP1", "C1", "C2", "TCS", [1.0, [0.1, 0.2]]),
            lambda m: m.add_cavity("C3", "Generic", [1.0, -1.0, 1e6]),
        ],
    )
    def test_failed_call_leaves_model_unchanged(self, model, call):
        before = snapshot_counts(model)
        with pytest.raises(ConfigurationError):
            call(model)
        assert snapshot_counts(model) == before

    def test_failed_call_keeps_result(self, single_cavity_model):
        result = single_cavity_model.solve()
        with pytest.raises(ConfigurationError):
            single_cavity_model.add_source("S1", "Direct", "C1", [1.0])
        assert single_cavity_model.state is ModelState.SOLVED
        assert single_cavity_model.result is result


class TestLedger:
    def test_records_in_insertion_order(self, two_cavity_model):
        edges = two_cavity_model.edges
        assert edges == [
            EdgeRecord("C1", REF, "AB1", ElementKind.ABSORBER),
            EdgeRecord("C2", REF, "AB2", ElementKind.ABSORBER),
            EdgeRecord("C1", "C2", "AP1", ElementKind.APERTURE),
            EdgeRecord("C2", "C1", "AP1", ElementKind.APERTURE),
            EdgeRecord("C1", REF, "S1", ElementKind.SOURCE),
        ]

    def test_ext_aperture_single_direction(self, model):
        model.add_aperture("AP1", "C2", EXT, "TCS", [1.0, 0.1])
        assert model.edges == [EdgeRecord("C2", EXT, "AP1", ElementKind.APERTURE)]

    def test_kind_is_string_enum(self, two_cavity_model):
        assert two_cavity_model.edges[0].kind == "Absorber"


class TestStateMachine:
    def test_outputs_require_solve(self, single_cavity_model):
        with pytest.raises(QueryError, match="no valid solution"):
            single_cavity_model.get_output("Cavity", "C1", "powerDensity")

    def test_solve_sets_state(self, single_cavity_model):
        single_cavity_model.solve()
        assert single_cavity_model.state is ModelState.SOLVED

    @pytest.mark.parametrize(
        "mutate",
        [
            lambda m: m.add_cavity("C9", "Generic", [1.0, 1.0, 1e6]),
            lambda m: m.add_absorber("AB9", "C1", 1, "AE", [1.0, 0.5]),
            lambda m: m.add_source("S9", "Direct", "C1", [1.0]),
            lambda m: m.add_aperture("AP9", "C1", EXT, "TCS", [1.0, 0.1]),
        ],
    )
    def test_mutation_invalidates_solution(self, single_cavity_model, mutate):
        result = single_cavity_model.solve()
        mutate(single_cavity_model)
        assert single_cavity_model.state is ModelState.BUILDING
        with pytest.raises(QueryError):
            single_cavity_model.get_output("Cavity", "C1", "powerDensity")
        # Snapshots taken earlier stay valid.
        values, _ = result.get_output("Cavity", "C1", "powerDensity")
        np.testing.assert_allclose(values, 1.0)

    def test_resolve_after_mutation(self, single_cavity_model):
        single_cavity_model.solve()
        single_cavity_model.add_source("S2", "Direct", "C1", [1.0])
        single_cavity_model.solve()
        values, _ = single_cavity_model.get_output("Cavity", "C1", "powerDensity")
        np.testing.assert_allclose(values, 2.0)

    def test_empty_model_cannot_solve(self):
        with pytest.raises(ConfigurationError, match="no cavities"):
            PowerBalanceModel([1e9], "Empty").solve()

    def test_chaining(self):
        model = (
            PowerBalanceModel([1e9], "Chain")
            .add_cavity("C1", "Generic", [1.0, 1.0, np.inf])
            .add_absorber("AB1", "C1", 1, "ACS", [1.0, 1.0])
            .add_source("S1", "Direct", "C1", [2.0])
        )
        values, units = model.solve().get_output("Absorber", "AB1", "absorbedPower")
        np.testing.assert_allclose(values, 2.0)
        assert units == "W"
