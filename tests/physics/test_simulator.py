"""
Tests for groundwater time stepping: state bounds, flux rules, mass balance
closure and state save/restore.
"""
from dataclasses import replace

import pytest

from aquiflow.core.config import AquiflowConfig, SolverConfig
from aquiflow.core.constants import SATURATION_TOLERANCE
from aquiflow.core.exceptions import UnknownNameError
from aquiflow.core.types import FlowKind, MassBalanceSink, StatisticsSink
from aquiflow.core.units import UnitConverter
from aquiflow.data.contracts import Node, TimePattern
from aquiflow.physics.aquifer import Aquifer
from aquiflow.physics.groundwater import Groundwater, Subcatchment
from aquiflow.physics.project import Project
from aquiflow.physics.simulator import GroundwaterSimulator, GroundwaterStateRecord
from aquiflow.reporting.massbal import GroundwaterMassBalance
from aquiflow.reporting.statistics import GroundwaterStatistics

ACRE = 43560.0  # ft2
US_RAINFALL = 43200.0
US_GWFLOW = 43560.0


class RecordingSink:
    """Collects everything the simulator reports"""

    def __init__(self):
        self.totals = []
        self.stats = []

    def add_groundwater_totals(self, infil_vol, upper_evap_vol, lower_evap_vol,
                               deep_loss_vol, lateral_vol):
        self.totals.append((infil_vol, upper_evap_vol, lower_evap_vol, deep_loss_vol, lateral_vol))

    def record_groundwater_stats(self, subcatchment_id, infil_rate, evap_loss_rate,
                                 lateral_flow_rate, deep_loss_rate, theta,
                                 water_table_elev, tstep):
        self.stats.append((subcatchment_id, infil_rate, evap_loss_rate, lateral_flow_rate,
                           deep_loss_rate, theta, water_table_elev, tstep))


class TestGroundwaterSimulator:
    """Test suite for the groundwater step orchestrator"""

    @pytest.fixture
    def project(self):
        """Single subcatchment over a 10 ft aquifer with the water table at 5 ft"""
        project = Project()
        aquifer = project.add_aquifer(Aquifer(
            name="AQ1",
            porosity=0.4,
            wilting_point=0.15,
            field_capacity=0.3,
            conductivity=1.0e-6,
            upper_evap_frac=0.35,
            bottom_elev=0.0,
            water_table_elev=5.0,
            upper_moisture=0.2,
        ))
        node = project.add_node(Node(name="N1", invert_elev=0.0))
        gw = Groundwater(aquifer=aquifer, node=node, surf_elev=10.0, a1=1.0e-5, b1=1.0)
        project.add_subcatchment(Subcatchment(name="S1", area=ACRE, frac_perv=1.0, groundwater=gw))
        return project

    @pytest.fixture
    def sink(self):
        return RecordingSink()

    @pytest.fixture
    def simulator(self, project, sink):
        sim = GroundwaterSimulator(
            project,
            units=UnitConverter(),
            solver=SolverConfig(),
            mass_balance=sink,
            statistics=sink,
            config=AquiflowConfig(),
        )
        assert sim.initialize() == []
        return sim

    @pytest.fixture
    def subcatchment(self, project):
        return project.get_subcatchment("S1")

    def test_sinks_satisfy_protocols(self, sink):
        assert isinstance(sink, MassBalanceSink)
        assert isinstance(sink, StatisticsSink)

    def test_draining_aquifer(self, simulator, subcatchment):
        """Lateral outflow lowers the water table with no other inputs"""
        fluxes = simulator.step(subcatchment, 0.0, 0.0, 3600.0)
        gw = subcatchment.groundwater

        assert fluxes.lateral > 0.0
        assert gw.lower_depth < 5.0
        # dL/dt = -a1 * L / ucf(GWFLOW) / (porosity - theta)
        expected_drop = 1.0e-5 * 5.0 / US_GWFLOW * 3600.0 / 0.2
        assert 5.0 - gw.lower_depth == pytest.approx(expected_drop, rel=1e-3)
        assert gw.theta == pytest.approx(0.2)
        assert gw.new_flow == fluxes.lateral
        assert gw.old_flow == 0.0

    @pytest.mark.parametrize("theta, infil_rate, evap_rate, tstep", [
        (0.2, 0.0, 0.0, 3600.0),
        (0.16, 0.0, 5.0e-6, 86400.0),
        (0.39, 1.0e-2, 0.0, 3600.0),
        (0.35, 1.0e-5, 0.0, 600.0),
        (0.3, 0.0, 1.0e-7, 60.0),
    ])
    def test_state_stays_in_bounds(self, simulator, subcatchment, theta, infil_rate, evap_rate, tstep):
        gw = subcatchment.groundwater
        gw.theta = theta
        simulator.climate.evap_rate = evap_rate
        for _ in range(3):
            simulator.step(subcatchment, 0.0, infil_rate * ACRE * tstep, tstep)
            assert gw.aquifer.wilting_point <= gw.theta < gw.aquifer.porosity
            assert 0.0 <= gw.lower_depth < gw.total_depth

    def test_no_evaporation_while_infiltrating(self, simulator, subcatchment):
        simulator.climate.evap_rate = 1.0e-7
        fluxes = simulator.step(subcatchment, 0.0, 1.0e-7 * ACRE * 300.0, 300.0)
        assert fluxes.upper_evap == 0.0
        assert fluxes.lower_evap == 0.0
        assert subcatchment.groundwater.evap_loss == 0.0

    def test_evaporation_without_infiltration(self, simulator, subcatchment):
        simulator.climate.evap_rate = 1.0e-7
        fluxes = simulator.step(subcatchment, 0.0, 0.0, 300.0)
        assert fluxes.upper_evap == pytest.approx(0.35e-7)

    def test_surface_evaporation_reduces_available_evaporation(self, simulator, subcatchment):
        simulator.climate.evap_rate = 1.0e-7
        surface_evap_vol = 0.8e-7 * ACRE * 300.0
        fluxes = simulator.step(subcatchment, surface_evap_vol, 0.0, 300.0)
        assert fluxes.upper_evap == pytest.approx(0.2e-7)

    def test_monthly_evaporation_pattern(self, project, simulator, subcatchment):
        factors = [1.0] * 12
        factors[6] = 0.5
        pattern = project.add_pattern(TimePattern(name="PAT", factors=factors))
        gw = subcatchment.groundwater
        gw.aquifer = project.add_aquifer(replace(gw.aquifer, upper_evap_pattern=pattern))

        simulator.climate.evap_rate = 1.0e-7
        simulator.climate.month = 7
        fluxes = simulator.step(subcatchment, 0.0, 0.0, 300.0)
        assert fluxes.upper_evap == pytest.approx(0.35 * 0.5 * 1.0e-7)

    def test_no_lateral_flow_below_threshold(self, project, simulator, subcatchment):
        project.get_node("N1").invert_elev = 6.0
        fluxes = simulator.step(subcatchment, 0.0, 0.0, 3600.0)
        assert fluxes.lateral == 0.0
        assert subcatchment.groundwater.lower_depth == pytest.approx(5.0)

    def test_node_elevation_override_sets_threshold(self, simulator, subcatchment):
        subcatchment.groundwater.node_elev = 6.0
        fluxes = simulator.step(subcatchment, 0.0, 0.0, 3600.0)
        assert fluxes.lateral == 0.0

    def test_node_depth_drives_flow_into_aquifer(self, project, simulator, subcatchment):
        """Surface water above the water table reverses the lateral flow"""
        gw = subcatchment.groundwater
        gw.a1, gw.b1, gw.a2, gw.b2 = 0.0, 0.0, 1.0e-3, 1.0
        node = project.get_node("N1")
        node.depth = 8.0
        node.inflow = 1.0

        fluxes = simulator.step(subcatchment, 0.0, 0.0, 3600.0)

        assert fluxes.lateral == pytest.approx(-1.0e-3 * 8.0 / US_GWFLOW)
        assert gw.lower_depth > 5.0
        assert gw.new_flow < 0.0

    def test_fixed_depth_overrides_node_depth(self, project, simulator, subcatchment):
        gw = subcatchment.groundwater
        gw.a1, gw.b1, gw.a2, gw.b2 = 0.0, 0.0, 1.0e-3, 1.0
        gw.fixed_depth = 3.0
        node = project.get_node("N1")
        node.depth = 8.0
        node.inflow = 1.0

        fluxes = simulator.step(subcatchment, 0.0, 0.0, 3600.0)

        assert fluxes.lateral == pytest.approx(-1.0e-3 * 3.0 / US_GWFLOW)

    def test_flow_into_aquifer_limited_by_node_supply(self, project, simulator, subcatchment):
        gw = subcatchment.groundwater
        gw.a1, gw.b1, gw.a2, gw.b2 = 0.0, 0.0, 1.0e-3, 1.0
        gw.fixed_depth = 8.0
        node = project.get_node("N1")
        node.inflow = 0.0
        node.volume = 1.0
        tstep = 3600.0

        fluxes = simulator.step(subcatchment, 0.0, 0.0, tstep)

        node_supply = (node.inflow + node.volume / tstep) / ACRE
        assert fluxes.lateral == pytest.approx(-node_supply)
        # porosity - theta = 0.2
        assert gw.lower_depth == pytest.approx(5.0 + node_supply * tstep / 0.2, rel=1e-3)

    def test_step_by_name(self, simulator, subcatchment):
        fluxes = simulator.step("S1", 0.0, 0.0, 3600.0)
        assert fluxes.lateral > 0.0
        assert subcatchment.groundwater.new_flow == fluxes.lateral

    def test_step_unknown_name(self, simulator):
        with pytest.raises(UnknownNameError):
            simulator.step("S9", 0.0, 0.0, 3600.0)

    def test_zero_time_step_changes_nothing(self, simulator, subcatchment, sink):
        gw = subcatchment.groundwater
        before = (gw.theta, gw.lower_depth, simulator.total_stored_volume("S1"))
        assert simulator.step(subcatchment, 0.0, 1000.0, 0.0) is None
        assert (gw.theta, gw.lower_depth, simulator.total_stored_volume("S1")) == before
        assert sink.totals == []

    def test_skipped_without_pervious_area(self, simulator, subcatchment):
        subcatchment.frac_perv = 0.0
        gw = subcatchment.groundwater
        before = (gw.theta, gw.lower_depth)
        assert simulator.step(subcatchment, 0.0, 1000.0, 60.0) is None
        assert (gw.theta, gw.lower_depth) == before

    def test_skipped_without_groundwater(self, project, simulator):
        dry = project.add_subcatchment(Subcatchment(name="S2", area=ACRE))
        assert simulator.step(dry, 0.0, 1000.0, 60.0) is None
        assert simulator.read_state("S2") is None
        assert simulator.total_stored_volume("S2") == 0.0

    def test_mass_balance_closure_draining(self, simulator, subcatchment):
        before = simulator.total_stored_volume("S1")
        fluxes = simulator.step(subcatchment, 0.0, 0.0, 3600.0)
        change = simulator.total_stored_volume("S1") - before

        net = (fluxes.infil - fluxes.upper_evap - fluxes.lower_evap
               - fluxes.deep_loss - fluxes.lateral) * 3600.0
        assert change == pytest.approx(net, rel=1e-3)

    def test_mass_balance_closure_infiltrating(self, simulator, subcatchment):
        tstep = 600.0
        before = simulator.total_stored_volume("S1")
        fluxes = simulator.step(subcatchment, 0.0, 1.0e-6 * ACRE * tstep, tstep)
        change = simulator.total_stored_volume("S1") - before

        assert fluxes.infil == pytest.approx(1.0e-6)
        net = (fluxes.infil - fluxes.upper_evap - fluxes.lower_evap
               - fluxes.deep_loss - fluxes.lateral) * tstep
        assert change == pytest.approx(net, rel=1e-3)

    def test_saturated_upper_zone_is_clamped(self, simulator, subcatchment):
        gw = subcatchment.groundwater
        gw.theta = 0.39
        simulator.step(subcatchment, 0.0, 1.0e-2 * ACRE * 3600.0, 3600.0)
        assert gw.theta == pytest.approx(0.4 - SATURATION_TOLERANCE)
        assert gw.lower_depth == pytest.approx(10.0 - SATURATION_TOLERANCE)
        assert gw.max_infil_vol == pytest.approx(SATURATION_TOLERANCE * SATURATION_TOLERANCE)

    def test_deep_equation_overrides_built_in_loss(self, project, subcatchment, simulator):
        gw = subcatchment.groundwater
        gw.aquifer = project.add_aquifer(replace(gw.aquifer, lower_loss_coeff=1.0e-7))
        subcatchment.flow_expressions.replace(FlowKind.DEEP, "0.001 + 0 * PHI")
        fluxes = simulator.step(subcatchment, 0.0, 0.0, 3600.0)
        assert fluxes.deep_loss == pytest.approx(0.001 / US_RAINFALL)

    def test_lateral_equation_adds_to_built_in_flow(self, simulator, subcatchment):
        subcatchment.flow_expressions.replace(FlowKind.LATERAL, "0.5")
        fluxes = simulator.step(subcatchment, 0.0, 0.0, 3600.0)
        lower_depth = subcatchment.groundwater.lower_depth
        expected = 1.0e-5 * lower_depth / US_GWFLOW + 0.5 / US_GWFLOW
        assert fluxes.lateral == pytest.approx(expected)

    def test_reports_to_sinks(self, simulator, subcatchment, sink):
        tstep = 300.0
        simulator.step(subcatchment, 0.0, 0.0, tstep)
        simulator.step(subcatchment, 0.0, 0.0, tstep)
        gw = subcatchment.groundwater

        assert len(sink.totals) == 2
        infil_vol, _, _, _, lateral_vol = sink.totals[-1]
        assert infil_vol == 0.0
        assert lateral_vol == pytest.approx(0.5 * (gw.old_flow + gw.new_flow) * ACRE * tstep)

        name, _, _, lateral_rate, _, theta, water_table, dt = sink.stats[-1]
        assert name == "S1"
        assert lateral_rate == gw.new_flow
        assert theta == gw.theta
        assert water_table == pytest.approx(gw.lower_depth)
        assert dt == tstep

    def test_continuity_over_run(self, project):
        massbal = GroundwaterMassBalance()
        stats = GroundwaterStatistics()
        sim = GroundwaterSimulator(project, units=UnitConverter(), solver=SolverConfig(),
                                   mass_balance=massbal, statistics=stats,
                                   config=AquiflowConfig())
        sim.initialize()
        massbal.set_initial_storage(sim.total_storage())
        subcatchment = project.get_subcatchment("S1")
        for _ in range(4):
            sim.step(subcatchment, 0.0, 1.0e-7 * ACRE * 900.0, 900.0)
        massbal.set_final_storage(sim.total_storage())

        assert massbal.n_steps == 4
        assert abs(massbal.continuity_error()) < 1.0e-3
        assert stats.get("S1").duration == pytest.approx(3600.0)

    def test_read_and_write_state(self, simulator, subcatchment):
        simulator.step(subcatchment, 0.0, 0.0, 3600.0)
        saved = simulator.read_state("S1")
        gw = subcatchment.groundwater
        assert saved.theta == gw.theta
        assert saved.water_table_elev == pytest.approx(gw.lower_depth)
        assert saved.lateral_flow == gw.new_flow
        assert saved.max_infil_vol == gw.max_infil_vol

        current_max = gw.max_infil_vol
        simulator.write_state("S1", GroundwaterStateRecord(
            theta=0.25, water_table_elev=6.0, lateral_flow=1.0e-6, max_infil_vol=None
        ))
        assert gw.theta == 0.25
        assert gw.lower_depth == pytest.approx(6.0)
        assert gw.old_flow == gw.new_flow == 1.0e-6
        assert gw.max_infil_vol == current_max

        simulator.write_state("S1", GroundwaterStateRecord(0.25, 6.0, 0.0, 1.5))
        assert gw.max_infil_vol == 1.5


class TestSaturatingStep:
    """A long wet step that drives the upper zone to saturation"""

    @pytest.fixture
    def project(self):
        project = Project()
        aquifer = project.add_aquifer(Aquifer(
            name="AQ1",
            porosity=0.5,
            wilting_point=0.15,
            field_capacity=0.3,
            conductivity=1.0e-6,
            lower_evap_depth=2.0,
            lower_loss_coeff=1.0e-7,
            bottom_elev=0.0,
            water_table_elev=0.5,
            upper_moisture=0.45,
        ))
        node = project.add_node(Node(name="N1", invert_elev=2.0, inflow=1.0, volume=100.0))
        gw = Groundwater(aquifer=aquifer, node=node, surf_elev=10.0,
                         a1=1.0e-3, b1=2.0, a2=1.0e-3, b2=2.0)
        project.add_subcatchment(Subcatchment(name="S1", area=ACRE, frac_perv=0.7, groundwater=gw))
        return project

    @pytest.fixture
    def simulator(self, project):
        sim = GroundwaterSimulator(project, units=UnitConverter(), solver=SolverConfig(),
                                   mass_balance=RecordingSink(), config=AquiflowConfig())
        assert sim.initialize() == []
        sim.climate.evap_rate = 3.0e-7
        return sim

    @pytest.mark.parametrize("tstep", [3600.0, 86400.0])
    def test_step_completes_within_bounds(self, simulator, project, tstep):
        subcatchment = project.get_subcatchment("S1")
        gw = subcatchment.groundwater
        before = simulator.total_stored_volume("S1")

        fluxes = simulator.step("S1", 0.0, 1.0e-4 * ACRE * tstep, tstep)

        assert fluxes is not None
        assert gw.aquifer.wilting_point <= gw.theta < gw.aquifer.porosity
        assert 0.0 <= gw.lower_depth < gw.total_depth
        assert simulator.total_stored_volume("S1") > before
        assert len(simulator.mass_balance.totals) == 1

    def test_repeated_wet_steps(self, simulator, project):
        gw = project.get_subcatchment("S1").groundwater
        for _ in range(3):
            assert simulator.step("S1", 0.0, 1.0e-4 * ACRE * 86400.0, 86400.0) is not None
            assert gw.theta < gw.aquifer.porosity
            assert gw.lower_depth < gw.total_depth
