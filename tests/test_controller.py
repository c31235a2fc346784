import random

import pytest

from poke_a_bone.bones import BONES
from poke_a_bone.controller import Feedback, GameController, GameState
from poke_a_bone.reporter import ScoreReporter
from poke_a_bone.storage import HIGH_SCORE_KEY, MemoryStore


def wrong_name(ctl):
    return next(b.name for b in BONES if b.name != ctl.target.name)


def test_start_selects_a_target_from_the_full_pool(controller):
    assert controller.state == GameState.ACTIVE
    assert controller.target is not None
    assert controller.target.name not in controller.pool
    assert len(controller.pool) == 17
    assert controller.time_remaining == 100
    assert controller.score == 0


def test_tick_counts_down_every_100ms(controller, scheduler):
    scheduler.advance(100)
    assert controller.time_remaining == 99
    scheduler.advance(950)
    assert controller.time_remaining == 90


def test_correct_click_every_round_completes_with_full_score(controller, scheduler, reported, store):
    seen = []
    for _ in range(18):
        assert controller.state == GameState.ACTIVE
        assert controller.time_remaining == 100
        seen.append(controller.target.name)
        assert controller.handle_click(controller.target.name) == Feedback.CORRECT
        scheduler.advance(1000)

    assert controller.state == GameState.COMPLETED
    assert controller.completed
    assert controller.score == 1800
    assert controller.pool == frozenset()
    assert reported == [1800]
    assert sorted(seen) == sorted(b.name for b in BONES)
    assert store.get(HIGH_SCORE_KEY) == '1800'
    assert controller.high_score == 1800
    assert controller.new_high_score


def test_never_clicking_times_out_with_zero_score(controller, scheduler, reported, store):
    scheduler.advance(99 * 100)
    assert controller.state == GameState.ACTIVE
    assert controller.time_remaining == 1
    scheduler.advance(100)
    assert controller.time_remaining == 0
    assert controller.state == GameState.ENDED
    assert not controller.completed
    assert reported == [0]
    assert store.get(HIGH_SCORE_KEY) is None


def test_wrong_click_then_correct_scores_reduced_time(controller):
    target = controller.target.name
    assert controller.handle_click(wrong_name(controller)) == Feedback.INCORRECT
    assert controller.time_remaining == 90
    controller.handle_click(target)
    assert controller.score == 90


def test_wrong_click_sets_and_clears_incorrect_feedback(controller, scheduler):
    name = wrong_name(controller)
    controller.handle_click(name)
    assert controller.feedback == {name: Feedback.INCORRECT}
    scheduler.advance(999)
    assert controller.feedback == {name: Feedback.INCORRECT}
    scheduler.advance(1)
    assert controller.feedback == {}


def test_latest_feedback_clear_timer_wins(controller, scheduler):
    first, second = [b.name for b in BONES if b.name != controller.target.name][:2]
    controller.handle_click(first)
    scheduler.advance(600)
    controller.handle_click(second)
    scheduler.advance(600)
    # the first timer would have fired at 1000 ms
    assert controller.feedback == {second: Feedback.INCORRECT}
    scheduler.advance(400)
    assert controller.feedback == {}


def test_clicks_are_ignored_during_round_transition(controller, scheduler):
    target = controller.target.name
    controller.handle_click(target)
    assert controller.state == GameState.ROUND_TRANSITION
    assert controller.feedback == {target: Feedback.CORRECT}
    assert controller.handle_click(target) is None
    assert controller.handle_click(wrong_name(controller)) is None
    assert controller.score == 100


def test_countdown_pauses_during_round_transition(controller, scheduler):
    controller.handle_click(controller.target.name)
    scheduler.advance(999)
    assert controller.time_remaining == 100
    scheduler.advance(1)
    assert controller.state == GameState.ACTIVE
    assert controller.feedback == {}
    assert len(controller.pool) == 16


def test_clicks_outside_any_bone_are_ignored(controller):
    assert controller.handle_click(None) is None
    assert controller.handle_click('Tailbone') is None
    assert controller.time_remaining == 100


def test_penalty_never_goes_below_zero_and_ends_game(controller, scheduler, reported):
    scheduler.advance(95 * 100)
    assert controller.time_remaining == 5
    controller.handle_click(wrong_name(controller))
    assert controller.time_remaining == 0
    assert controller.state == GameState.ENDED
    assert controller.feedback == {}
    assert reported == [0]


def test_game_end_is_reported_exactly_once(controller, scheduler, reported):
    scheduler.advance(100 * 100)
    assert reported == [0]
    controller.end_game(completed=False)
    controller.end_game(completed=True)
    scheduler.advance(10000)
    assert reported == [0]
    assert controller.state == GameState.ENDED


def test_clicks_are_ignored_after_game_over(controller, scheduler):
    scheduler.advance(100 * 100)
    assert controller.handle_click(controller.target.name) is None
    assert controller.score == 0


def test_restart_after_timeout_resets_pool_and_score(controller, scheduler, reported):
    controller.handle_click(controller.target.name)
    scheduler.advance(1000)
    scheduler.advance(100 * 100)
    assert controller.state == GameState.ENDED
    assert reported == [100]

    controller.restart_game()
    assert controller.state == GameState.ACTIVE
    assert controller.score == 0
    assert controller.time_remaining == 100
    assert len(controller.pool) + 1 == 18
    assert controller.target.name not in controller.pool

    scheduler.advance(100 * 100)
    assert reported == [100, 0]


def test_restart_cancels_pending_timers(controller, scheduler):
    controller.handle_click(controller.target.name)
    controller.restart_game()
    target = controller.target.name
    scheduler.advance(1000)
    # the old round-advance callback must not pick a new bone
    assert controller.target.name == target
    assert controller.time_remaining == 90


def test_teardown_stops_all_updates(controller, scheduler, reported):
    controller.handle_click(wrong_name(controller))
    controller.teardown()
    assert controller.state == GameState.IDLE
    scheduler.advance(20000)
    assert controller.time_remaining == 90
    assert reported == []
    assert scheduler.pending == 0


def test_high_score_is_loaded_and_only_raised(scheduler):
    store = MemoryStore({HIGH_SCORE_KEY: '500'})
    ctl = GameController(scheduler, store=store, rng=random.Random(0))
    assert ctl.high_score == 500
    ctl.start()
    ctl.handle_click(ctl.target.name)
    scheduler.advance(1000)
    scheduler.advance(100 * 100)
    assert ctl.state == GameState.ENDED
    assert ctl.score == 100
    assert store.get(HIGH_SCORE_KEY) == '500'
    assert not ctl.new_high_score


def test_timeout_with_new_best_persists_high_score(controller, scheduler, store):
    controller.handle_click(controller.target.name)
    scheduler.advance(1000)
    scheduler.advance(100 * 100)
    assert controller.state == GameState.ENDED
    assert store.get(HIGH_SCORE_KEY) == '100'


class BrokenStore:
    def get(self, key):
        raise OSError('storage denied')

    def set(self, key, value):
        raise OSError('storage denied')


def test_unavailable_storage_degrades_to_session_high_score(scheduler, capsys):
    ctl = GameController(scheduler, store=BrokenStore(), rng=random.Random(0))
    assert ctl.high_score == 0
    ctl.start()
    ctl.handle_click(ctl.target.name)
    scheduler.advance(1000)
    scheduler.advance(100 * 100)
    assert ctl.state == GameState.ENDED
    assert ctl.high_score == 100
    assert 'Could not save high score' in capsys.readouterr().err


def test_failing_host_callback_does_not_break_game_over(scheduler, capsys):
    def explode(score):
        raise RuntimeError('host is gone')

    ctl = GameController(scheduler, reporter=ScoreReporter(explode), rng=random.Random(0))
    ctl.start()
    scheduler.advance(100 * 100)
    assert ctl.state == GameState.ENDED
    assert 'on_game_end handler failed' in capsys.readouterr().err


@pytest.mark.parametrize('seed', [1, 2, 3])
def test_random_play_keeps_invariants(seed, scheduler):
    rng = random.Random(seed)
    reported = []
    ctl = GameController(scheduler, reporter=ScoreReporter(reported.append), rng=random.Random(seed))
    ctl.start()
    last_score = 0
    drawn = [ctl.target.name]
    for _ in range(400):
        roll = rng.random()
        if roll < 0.3 and ctl.target is not None:
            ctl.handle_click(ctl.target.name)
        elif roll < 0.6:
            ctl.handle_click(rng.choice(BONES).name)
        else:
            scheduler.advance(rng.randrange(0, 400))
        assert 0 <= ctl.time_remaining <= 100
        assert ctl.score >= last_score
        last_score = ctl.score
        if ctl.active and ctl.target.name != drawn[-1]:
            drawn.append(ctl.target.name)
        if ctl.over:
            break
    assert len(drawn) == len(set(drawn))
    assert len(reported) == (1 if ctl.over else 0)
