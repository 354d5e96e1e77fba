# SPDX-FileCopyrightText: 2025 robot-visual-perception
#
# SPDX-License-Identifier: MIT
import pytest

from navigator.alerts import AlertTier
from navigator.state import PublishedState, StateStore


def test_initial_state_is_empty() -> None:
    state = StateStore().current
    assert state.frame_id == 0
    assert state.regions == ()
    assert state.nearest is None
    assert state.description == "no obstacle"
    assert state.alert_tier is AlertTier.NONE


@pytest.mark.asyncio
async def test_subscribers_get_latest_state_only() -> None:
    store = StateStore()
    queue = store.subscribe()

    store.publish(PublishedState(frame_id=1))
    store.publish(PublishedState(frame_id=2))

    assert store.current.frame_id == 2
    assert queue.qsize() == 1
    assert (await queue.get()).frame_id == 2


@pytest.mark.asyncio
async def test_unsubscribed_queue_stops_receiving() -> None:
    store = StateStore()
    queue = store.subscribe()
    store.unsubscribe(queue)
    store.publish(PublishedState(frame_id=3))
    assert queue.empty()
