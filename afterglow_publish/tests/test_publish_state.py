"""Tests for PublishState."""

import threading

import pytest

from afterglow_publish.errors import PlanBusyError, PlanNotFoundError
from afterglow_publish.planner import PublishPlan
from afterglow_publish.publish_state import PublishState


@pytest.fixture
def plan():
    """Fixture providing an empty plan."""
    return PublishPlan(plan_id='plan-1')


class TestPublishState:
    """Tests for PublishState."""

    def test_register_and_get(self, plan):
        """Test a registered plan can be fetched by id."""
        state = PublishState()
        state.register(plan)

        assert state.get('plan-1') is plan
        assert 'plan-1' in state
        assert len(state) == 1
        assert state.is_cancelled('plan-1') is False

    def test_get_unknown(self):
        """Test fetching an unknown plan."""
        with pytest.raises(PlanNotFoundError) as exc_info:
            PublishState().get('nope')

        assert 'Run preview first' in str(exc_info.value)

    def test_begin_execute_twice(self, plan):
        """Test a plan cannot be executed twice at once."""
        state = PublishState()
        state.register(plan)

        state.begin_execute('plan-1')
        with pytest.raises(PlanBusyError):
            state.begin_execute('plan-1')

        state.end_execute('plan-1')
        assert state.begin_execute('plan-1') is plan

    def test_begin_execute_unknown(self):
        """Test executing an unknown plan."""
        with pytest.raises(PlanNotFoundError):
            PublishState().begin_execute('nope')

    def test_cancel_keeps_plan(self, plan):
        """Test cancelling sets the flag without forgetting the plan."""
        state = PublishState()
        state.register(plan)

        state.cancel('plan-1')

        assert state.is_cancelled('plan-1') is True
        assert 'plan-1' in state

    def test_cancel_unknown_ignored(self, plan):
        """Test cancelling an unregistered or already removed plan records nothing."""
        state = PublishState()
        state.cancel('missing')
        state.register(plan)
        state.remove('plan-1')

        state.cancel('plan-1')

        assert state.is_cancelled('missing') is False
        assert state.is_cancelled('plan-1') is False
        assert state._cancelled == {}

    def test_register_clears_flag(self, plan):
        """Test re-registering a plan resets its cancel flag."""
        state = PublishState()
        state.register(plan)
        state.cancel('plan-1')

        state.register(plan)

        assert state.is_cancelled('plan-1') is False

    def test_remove_returns_staging_dir(self, plan, tmp_path):
        """Test removing a plan hands back its staging directory."""
        state = PublishState()
        state.register(plan, tmp_path)
        state.cancel('plan-1')

        assert state.remove('plan-1') == tmp_path
        assert 'plan-1' not in state
        assert state.is_cancelled('plan-1') is False
        assert state.remove('plan-1') is None

    def test_end_execute_after_remove(self, plan):
        """Test ending an execute of a removed plan is harmless."""
        state = PublishState()
        state.register(plan)
        state.remove('plan-1')

        state.end_execute('plan-1')

    def test_concurrent_begin_execute(self, plan):
        """Test exactly one of many concurrent executes wins."""
        state = PublishState()
        state.register(plan)
        outcomes = []

        def attempt():
            try:
                state.begin_execute('plan-1')
                outcomes.append('ok')
            except PlanBusyError:
                outcomes.append('busy')

        threads = [threading.Thread(target=attempt) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert outcomes.count('ok') == 1
        assert outcomes.count('busy') == 7
