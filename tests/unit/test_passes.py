"""
Tests for pass scheduling and the analysis context.
"""

import pytest

from circflow.passes.base import AnalysisCtxt, BasePass, PassManager
from circflow.passes.constants import ConstantHandlerPass
from circflow.passes.flow_analysis import FlowAnalysisPass
from circflow.passes.lint_pass import LintPass


_order = []


class _First(BasePass):
    def run(self, program, ctx):
        _order.append("first")
        ctx.set_analysis(_First, 1)
        return program


class _Second(BasePass):
    requires = [_First]

    def run(self, program, ctx):
        _order.append("second")
        ctx.set_analysis(_Second, ctx.get_analysis(_First) + 1)
        return program


class _Third(BasePass):
    requires = [_Second, _First]

    def run(self, program, ctx):
        _order.append("third")
        return program


class _CycleA(BasePass):
    def run(self, program, ctx):
        return program


class _CycleB(BasePass):
    requires = [_CycleA]

    def run(self, program, ctx):
        return program


@pytest.fixture
def empty_program(parse_program):
    return parse_program("template T() { }")


class TestPassManager:
    """Dependency ordering"""

    def setup_method(self):
        _order.clear()

    def test_dependencies_run_first(self, empty_program):
        manager = PassManager()
        for pass_class in (_Third, _Second, _First):
            manager.register_pass(pass_class)
        ctx = AnalysisCtxt(empty_program)
        manager.run_all(empty_program, ctx)
        assert _order == ["first", "second", "third"]
        assert ctx.get_analysis(_Second) == 2

    def test_independent_passes_keep_registration_order(self):
        manager = PassManager()
        manager.register_pass(_First)
        manager.register_pass(_CycleA)
        assert manager._topological_sort() == [_First, _CycleA]

    def test_missing_dependency(self):
        manager = PassManager()
        manager.register_pass(_Second)
        with pytest.raises(RuntimeError, match="_First"):
            manager._topological_sort()

    def test_circular_dependency(self, monkeypatch):
        monkeypatch.setattr(_CycleA, "requires", [_CycleB])
        manager = PassManager()
        manager.register_pass(_CycleA)
        manager.register_pass(_CycleB)
        with pytest.raises(RuntimeError, match="Circular"):
            manager._topological_sort()

    def test_driver_pass_order(self):
        manager = PassManager()
        for pass_class in (FlowAnalysisPass, LintPass, ConstantHandlerPass):
            manager.register_pass(pass_class)
        order = manager._topological_sort()
        assert order.index(ConstantHandlerPass) < order.index(LintPass)


class TestAnalysisCtxt:
    """Result storage"""

    def test_missing_analysis(self, empty_program):
        ctx = AnalysisCtxt(empty_program)
        assert not ctx.has_analysis(_First)
        with pytest.raises(RuntimeError, match="_First"):
            ctx.get_analysis(_First)

    def test_reporter_knows_sources(self, parse_program):
        program = parse_program("template T() { }", "ctx.circom")
        ctx = AnalysisCtxt(program)
        assert "ctx.circom" in ctx.reporter.source_files
