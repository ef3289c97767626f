"""Tests for canopy evaporation.

Tests cover the three sub-models, competitive extraction against the actual
ET accumulator, constraint bookkeeping, unit-type gating and wiring checks.
"""

import numpy as np
import pytest

from hydromovers import (
    CanopyEvaporation,
    CanopyEvaporationModel,
    ConfigurationError,
    Options,
    StorageIndex,
    StorageType,
    UnitType,
)
from hydromovers.process import Process


class TestRutterModel:
    """Tests for evaporation proportional to canopy storage."""

    def test_reference_scenario(self, storage, options, make_unit, state_factory) -> None:
        """Fc=0.6, cap=5, storage=4, PET=3 gives 1.8 mm/d and an equal accumulator rate."""
        process = CanopyEvaporation(storage, CanopyEvaporationModel.RUTTER)
        unit = make_unit(forest_coverage=0.6, capacity=5.0, pet=3.0)
        state = state_factory(canopy=4.0)

        rates = process.evaluate(state, unit, options, 0.0)

        assert rates[0] == pytest.approx(1.8)
        assert rates[1] == pytest.approx(1.8)

    def test_proportional_to_storage(self, storage, options, make_unit, state_factory) -> None:
        """Half-full canopy evaporates at half the maximum rate."""
        process = CanopyEvaporation(storage, "rutter")
        unit = make_unit(forest_coverage=1.0, capacity=4.0, pet=2.0)

        rates = process.get_rates_of_change(state_factory(canopy=2.0), unit, options, 0.0)

        assert rates[0] == pytest.approx(1.0)

    def test_invalid_negative_storage_clipped(self, storage, options, make_unit, state_factory) -> None:
        """Negative storage is clipped to zero before use."""
        process = CanopyEvaporation(storage, CanopyEvaporationModel.RUTTER)

        rates = process.evaluate(state_factory(canopy=-1.0), make_unit(), options, 0.0)

        np.testing.assert_array_equal(rates, [0.0, 0.0])

    def test_trunk_fraction_ignored_without_trunk(self, storage, options, make_unit, state_factory) -> None:
        """Trunk fraction has no effect when trunks are not modeled."""
        process = CanopyEvaporation(storage, CanopyEvaporationModel.RUTTER)
        unit = make_unit(forest_coverage=0.6, capacity=5.0, pet=3.0, trunk_fraction=0.2)

        rates = process.get_rates_of_change(state_factory(canopy=4.0), unit, options, 0.0)

        assert rates[0] == pytest.approx(1.8)

    def test_trunk_fraction_applied_with_trunk(self, trunk_storage, options, make_unit) -> None:
        """Trunk fraction reduces canopy evaporation when trunks are modeled."""
        process = CanopyEvaporation(trunk_storage, CanopyEvaporationModel.RUTTER)
        unit = make_unit(forest_coverage=0.6, capacity=5.0, pet=3.0, trunk_fraction=0.2)
        state = trunk_storage.new_state()
        state[trunk_storage.resolve(StorageType.CANOPY)] = 4.0

        rates = process.get_rates_of_change(state, unit, options, 0.0)

        assert rates[0] == pytest.approx(0.8 * 1.8)

    def test_zero_capacity_gives_zero_rate(self, storage, options, make_unit, state_factory) -> None:
        """A canopy without capacity cannot hold water to evaporate."""
        process = CanopyEvaporation(storage, CanopyEvaporationModel.RUTTER)

        rates = process.get_rates_of_change(state_factory(canopy=1.0), make_unit(capacity=0.0), options, 0.0)

        np.testing.assert_array_equal(rates, [0.0, 0.0])


class TestMaximumAndAllModels:
    """Tests for the PET-limited and instantaneous sub-models."""

    def test_maximum_evaporates_at_pet(self, storage, options, make_unit, state_factory) -> None:
        """MAXIMUM proposes Fc * PET regardless of storage."""
        process = CanopyEvaporation(storage, CanopyEvaporationModel.MAXIMUM)
        unit = make_unit(forest_coverage=0.5, pet=4.0)

        rates = process.get_rates_of_change(state_factory(canopy=10.0), unit, options, 0.0)

        assert rates[0] == pytest.approx(2.0)
        assert rates[1] == pytest.approx(2.0)

    def test_negative_pet_floored(self, storage, options, make_unit, state_factory) -> None:
        """Negative PET (condensation) produces no evaporation."""
        process = CanopyEvaporation(storage, CanopyEvaporationModel.MAXIMUM)

        rates = process.get_rates_of_change(state_factory(canopy=10.0), make_unit(pet=-2.0), options, 0.0)

        np.testing.assert_array_equal(rates, [0.0, 0.0])

    def test_all_empties_canopy_in_one_step(self, storage, make_unit, state_factory) -> None:
        """ALL proposes storage / timestep."""
        process = CanopyEvaporation(storage, CanopyEvaporationModel.ALL)
        options = Options(timestep=0.5)

        rates = process.evaluate(state_factory(canopy=4.0), make_unit(), options, 0.0)

        assert rates[0] == pytest.approx(8.0)
        assert rates[1] == pytest.approx(8.0)


class TestCompetitiveExtraction:
    """Tests for PET reduction by actual ET already recorded this step."""

    def test_pet_reduced_by_recorded_aet(self, storage, options, make_unit, state_factory) -> None:
        """2 mm of recorded AET leaves 1 mm/d of a 3 mm/d PET."""
        process = CanopyEvaporation(storage, CanopyEvaporationModel.MAXIMUM)

        rates = process.get_rates_of_change(state_factory(canopy=10.0, aet=2.0), make_unit(pet=3.0), options, 0.0)

        assert rates[0] == pytest.approx(1.0)

    def test_adjusted_pet_floored_at_zero(self, storage, options, make_unit, state_factory) -> None:
        """AET above PET never produces a negative demand."""
        process = CanopyEvaporation(storage, CanopyEvaporationModel.MAXIMUM)

        rates = process.get_rates_of_change(state_factory(canopy=10.0, aet=5.0), make_unit(pet=3.0), options, 0.0)

        np.testing.assert_array_equal(rates, [0.0, 0.0])

    def test_suppressed_competition_uses_full_pet(self, storage, make_unit, state_factory) -> None:
        """With competition suppressed, recorded AET is ignored."""
        process = CanopyEvaporation(storage, CanopyEvaporationModel.MAXIMUM)
        options = Options(timestep=1.0, suppress_competitive_et=True)

        rates = process.get_rates_of_change(state_factory(canopy=10.0, aet=2.0), make_unit(pet=3.0), options, 0.0)

        assert rates[0] == pytest.approx(3.0)


class TestConstraints:
    """Tests for non-negativity, supply limit and accumulator reconciliation."""

    def test_supply_limit_with_accumulator_reconciliation(self, storage, options, make_unit, state_factory) -> None:
        """Clamping evaporation by 8 mm/d takes exactly 8 mm/d off the accumulator."""
        process = CanopyEvaporation(storage, CanopyEvaporationModel.MAXIMUM)
        unit = make_unit(forest_coverage=1.0, pet=10.0)
        state = state_factory(canopy=2.0)

        rates = process.get_rates_of_change(state, unit, options, 0.0)
        raw = rates.copy()
        process.apply_constraints(state, unit, options, 0.0, rates)

        assert rates[0] == pytest.approx(2.0)
        assert raw[1] - rates[1] == pytest.approx(raw[0] - rates[0])

    def test_reference_scenario_unchanged_by_constraints(self, storage, options, make_unit, state_factory) -> None:
        """1.8 mm/d is below the 4 mm/d supply limit and passes unchanged."""
        process = CanopyEvaporation(storage, CanopyEvaporationModel.RUTTER)
        unit = make_unit(forest_coverage=0.6, capacity=5.0, pet=3.0)
        rates = np.array([1.8, 1.8])

        process.apply_constraints(state_factory(canopy=4.0), unit, options, 0.0, rates)

        np.testing.assert_allclose(rates, [1.8, 1.8])

    def test_wrong_direction_clamped_to_zero(self, storage, options, make_unit, state_factory) -> None:
        """A negative proposed rate is clamped to zero and removed from the accumulator."""
        process = CanopyEvaporation(storage, CanopyEvaporationModel.ALL)
        state = state_factory(canopy=-1.0)

        rates = process.evaluate(state, make_unit(), options, 0.0)

        assert rates[0] == 0.0
        assert rates[1] == pytest.approx(0.0)

    def test_rates_length_validated(self, storage, options, make_unit, state_factory) -> None:
        """apply_constraints rejects a rate array of the wrong length."""
        process = CanopyEvaporation(storage, CanopyEvaporationModel.RUTTER)

        with pytest.raises(ValueError, match="expected 2 rates"):
            process.apply_constraints(state_factory(), make_unit(), options, 0.0, np.zeros(3))

    def test_state_not_mutated(self, storage, options, make_unit, state_factory) -> None:
        """Neither phase modifies the state vector."""
        process = CanopyEvaporation(storage, CanopyEvaporationModel.MAXIMUM)
        state = state_factory(canopy=2.0, aet=1.0)
        before = state.copy()

        process.evaluate(state, make_unit(pet=10.0), options, 0.0)

        np.testing.assert_array_equal(state, before)


class TestGating:
    """Tests for forest-coverage and unit-type short circuits."""

    @pytest.mark.parametrize("model", list(CanopyEvaporationModel))
    def test_zero_coverage_gives_zero_rates(self, storage, options, make_unit, state_factory, model) -> None:
        """No canopy on the unit means no evaporation and no accumulator change."""
        process = CanopyEvaporation(storage, model)

        rates = process.evaluate(state_factory(canopy=3.0), make_unit(forest_coverage=0.0, pet=5.0), options, 0.0)

        np.testing.assert_array_equal(rates, [0.0, 0.0])

    @pytest.mark.parametrize("unit_type", [UnitType.LAKE, UnitType.GLACIER, UnitType.ROCK])
    def test_non_canopy_unit_is_noop(self, storage, options, make_unit, state_factory, unit_type) -> None:
        """Rates are zero and constraints leave rates untouched on non-canopy units."""
        process = CanopyEvaporation(storage, CanopyEvaporationModel.MAXIMUM)
        unit = make_unit(unit_type=unit_type)
        state = state_factory(canopy=1.0)

        assert not process.get_rates_of_change(state, unit, options, 0.0).any()

        rates = np.array([5.0, 5.0])
        process.apply_constraints(state, unit, options, 0.0, rates)
        np.testing.assert_array_equal(rates, [5.0, 5.0])

    def test_wetland_hosts_canopy(self, storage, options, make_unit, state_factory) -> None:
        """Wetland units are treated like standard units."""
        process = CanopyEvaporation(storage, CanopyEvaporationModel.MAXIMUM)

        rates = process.get_rates_of_change(state_factory(), make_unit(unit_type=UnitType.WETLAND), options, 0.0)

        assert rates[0] == pytest.approx(3.0)


class _MiswiredEvaporation(CanopyEvaporation):
    """Evaporation wired from the atmosphere instead of the canopy."""

    def __init__(self, storage: StorageIndex) -> None:
        Process.__init__(self, storage, CanopyEvaporationModel.MAXIMUM)
        aet = storage.resolve(StorageType.AET)
        atmosphere = storage.resolve(StorageType.ATMOSPHERE)
        self._specify_connections([(atmosphere, atmosphere), (aet, aet)])


class TestInitialize:
    """Tests for connection validation."""

    def test_valid_wiring_passes(self, storage) -> None:
        """A fully wired process initializes without error."""
        process = CanopyEvaporation(storage, CanopyEvaporationModel.RUTTER)
        process.initialize()

        assert process.n_connections == 2
        assert process.connections[1].is_accumulator

    def test_missing_atmosphere_raises(self) -> None:
        """A missing destination compartment is a configuration error."""
        storage = StorageIndex([StorageType.CANOPY, StorageType.AET])
        process = CanopyEvaporation(storage, CanopyEvaporationModel.RUTTER)

        with pytest.raises(ConfigurationError, match="never specified"):
            process.initialize()

    def test_wrong_source_type_reports_expected_and_actual(self, storage) -> None:
        """A source of the wrong type names the process and both types."""
        process = _MiswiredEvaporation(storage)

        with pytest.raises(ConfigurationError) as excinfo:
            process.initialize()

        assert excinfo.value.expected == StorageType.CANOPY
        assert excinfo.value.actual == StorageType.ATMOSPHERE
        assert "canopy_evaporation" in str(excinfo.value)

    def test_connections_specified_once(self, storage) -> None:
        """Connections cannot be redeclared after construction."""
        process = CanopyEvaporation(storage, CanopyEvaporationModel.RUTTER)

        with pytest.raises(RuntimeError, match="only be specified once"):
            process._specify_connections([(0, 1)])

    def test_unknown_model_raises(self, storage) -> None:
        """An unknown sub-model name is rejected at construction."""
        with pytest.raises(ValueError, match="unknown model"):
            CanopyEvaporation(storage, "penman")
