"""Basic import tests to verify package structure."""


def test_import_meshroute():
    """Verify main package imports."""
    import meshroute
    assert meshroute.__version__ == "0.1.0"


def test_import_core():
    """Verify core module structure exists."""
    from meshroute import core
    assert hasattr(core, "__doc__")
    assert hasattr(core, "APSPEngine")


def test_import_routing():
    """Verify routing module structure exists."""
    from meshroute import routing
    assert hasattr(routing, "PacketRouter")


def test_import_analysis():
    """Verify analysis module structure exists."""
    from meshroute import analysis
    assert hasattr(analysis, "compare_with_reference")


def test_import_simulation():
    from meshroute.simulation import Simulation, SimulationConfig
    assert Simulation is not None
    assert SimulationConfig().initial_nodes == 10
