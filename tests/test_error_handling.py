import pytest

from holdem.errors import (
    AlreadyFolded,
    InvalidAction,
    InvalidAmount,
    MissingParameters,
    NotYourTurn,
    PlayerNotFound,
    RoundNotActive,
    TableError,
    TableFull,
)
from holdem.models import MAX_SEATS, ActionType, Player, Stage, TableConfig

from .helpers import act_current, create_engine, host_id, start_hand


def snapshot(engine):
    return (
        engine.public_state(None),
        [(player.stack, player.bet, player.folded) for player in engine.players],
        set(engine.state.acted),
        engine.state.current_player_index,
    )


def test_errors_carry_codes_and_are_value_errors():
    err = NotYourTurn("Not your turn.")
    assert isinstance(err, TableError)
    assert isinstance(err, ValueError)
    assert err.code == "NOT_YOUR_TURN"
    assert err.msg == "Not your turn."


def test_start_requires_two_players():
    engine = create_engine(players=1)
    with pytest.raises(InvalidAction, match="At least two players"):
        engine.start_hand(host_id(engine))
    assert engine.state.stage == Stage.WAITING


def test_only_host_can_start():
    engine = create_engine(players=2)
    guest = engine.players[1]
    with pytest.raises(InvalidAction, match="Only the host"):
        engine.start_hand(guest.id)
    with pytest.raises(InvalidAction, match="Only the host"):
        engine.start_hand("nobody")
    assert engine.state.stage == Stage.WAITING
    assert all(player.hole_cards == [] for player in engine.players)


def test_start_rejected_while_hand_is_being_bet():
    engine = create_engine(players=2)
    start_hand(engine)
    before = snapshot(engine)
    with pytest.raises(InvalidAction, match="already in progress"):
        start_hand(engine)
    assert snapshot(engine) == before


def test_start_needs_two_players_with_chips():
    engine = create_engine(players=2)
    engine.players[1].stack = 0
    with pytest.raises(InvalidAction, match="with chips"):
        start_hand(engine)


def test_actions_rejected_when_no_round_is_active():
    engine = create_engine(players=2)
    alice = engine.players[0]
    with pytest.raises(RoundNotActive, match="not started"):
        engine.act(alice.id, ActionType.CHECK_CALL)

    start_hand(engine)
    engine.declare_winner(alice.id)
    with pytest.raises(RoundNotActive):
        engine.act(alice.id, ActionType.FOLD)


def test_actions_rejected_after_showdown():
    engine = create_engine(players=2)
    start_hand(engine)
    engine.state.stage = Stage.SHOWDOWN
    with pytest.raises(RoundNotActive, match="Betting is over"):
        engine.act(engine.players[0].id, ActionType.CHECK_CALL)


def test_out_of_turn_action_changes_nothing():
    engine = create_engine(players=3)
    start_hand(engine)
    before = snapshot(engine)
    with pytest.raises(NotYourTurn):
        engine.act(engine.players[2].id, ActionType.CHECK_CALL)
    assert snapshot(engine) == before


def test_unknown_player_is_reported():
    engine = create_engine(players=2)
    start_hand(engine)
    with pytest.raises(PlayerNotFound):
        engine.apply_action("ghost", "fold")
    with pytest.raises(PlayerNotFound, match="Winner not found"):
        engine.declare_winner("ghost")
    with pytest.raises(PlayerNotFound):
        engine.remove_player("ghost")


@pytest.mark.parametrize("amount", [5, 0, -20, None, "50", True, 2.5])
def test_bad_raise_amounts_leave_table_untouched(amount):
    engine = create_engine(players=2)
    start_hand(engine)
    alice = engine.current_player()
    before = snapshot(engine)

    with pytest.raises(InvalidAmount):
        engine.act(alice.id, ActionType.BET_RAISE, amount)

    assert snapshot(engine) == before
    assert engine.state.pot == 15
    assert engine.state.current_bet == 10


def test_raise_without_chips_to_exceed_current_bet_is_rejected():
    engine = create_engine(players=2)
    alice, bob = engine.players
    alice.stack = 8
    start_hand(engine)
    # Alice has 3 chips behind after the small blind; 5 + 3 cannot beat 10.
    with pytest.raises(InvalidAmount, match="call instead"):
        engine.act(alice.id, ActionType.BET_RAISE, 100)
    assert alice.stack == 3
    assert engine.state.current_bet == 10


def test_folded_player_cannot_fold_again():
    engine = create_engine(players=3)
    start_hand(engine)
    player = engine.current_player()
    player.folded = True
    with pytest.raises(AlreadyFolded):
        engine.act(player.id, ActionType.FOLD)


def test_apply_action_validates_names_and_parameters():
    engine = create_engine(players=2)
    alice, bob = engine.players
    with pytest.raises(InvalidAction, match="Unknown action"):
        engine.apply_action(alice.id, "shove")
    with pytest.raises(MissingParameters):
        engine.apply_action(alice.id, "declare")
    with pytest.raises(MissingParameters):
        engine.add_player("   ")


def test_apply_action_dispatches_wire_names():
    engine = create_engine(players=2)
    alice, bob = engine.players
    engine.apply_action(alice.id, "start")
    assert engine.state.stage == Stage.PREFLOP
    engine.apply_action(alice.id, "betRaise", amount=15)
    assert engine.state.current_bet == 20
    engine.apply_action(bob.id, "checkCall")
    assert engine.state.stage == Stage.FLOP
    engine.apply_action(bob.id, "fold")
    assert engine.state.stage == Stage.WAITING
    assert alice.stack == 1020
    engine.apply_action(bob.id, "declare", winner_id=alice.id)
    assert engine.total_chips() == 2000


def test_check_call_never_overdraws_stack():
    engine = create_engine(players=3)
    p0, p1, p2 = engine.players
    start_hand(engine)
    act_current(engine, ActionType.BET_RAISE, 500)  # p0
    p1.stack = 40
    act_current(engine, ActionType.CHECK_CALL)  # p1 short-calls all-in
    assert p1.stack == 0
    assert p1.bet == 45
    # p2 can still act, so betting stays open.
    assert engine.state.stage == Stage.PREFLOP
    assert engine.current_player() is p2
    assert engine.state.current_bet == 500


def test_short_call_heads_up_runs_the_board_out():
    engine = create_engine(players=2)
    alice, bob = engine.players
    start_hand(engine)
    act_current(engine, ActionType.BET_RAISE, 500)
    bob.stack = 40
    act_current(engine, ActionType.CHECK_CALL)
    assert engine.state.stage == Stage.SHOWDOWN
    assert len(engine.state.community) == 5
    assert engine.state.pot == 0
    assert alice.stack + bob.stack == 495 + 555


def test_full_table_rejects_new_players():
    engine = create_engine(players=3, max_seats=3)
    before = snapshot(engine)
    with pytest.raises(TableFull) as excinfo:
        engine.add_player("Late")
    assert isinstance(excinfo.value, InvalidAction)
    assert excinfo.value.code == "TABLE_FULL"
    assert snapshot(engine) == before
    assert len(engine.players) == 3


def test_start_refuses_more_players_than_seats_without_touching_state():
    engine = create_engine(players=2, max_seats=2)
    engine.players.append(Player(id="extra", name="Extra", stack=1_000))
    before = snapshot(engine)
    with pytest.raises(InvalidAction):
        start_hand(engine)
    assert snapshot(engine) == before
    assert engine.state.stage == Stage.WAITING
    assert engine.state.hand_number == 0

    engine.remove_player("extra")
    start_hand(engine)
    assert engine.state.stage == Stage.PREFLOP


def test_largest_table_deals_a_full_board():
    engine = create_engine(players=MAX_SEATS, max_seats=MAX_SEATS)
    total = engine.total_chips()
    start_hand(engine)
    while engine.hand_in_progress():
        act_current(engine, ActionType.CHECK_CALL)
    assert engine.state.stage == Stage.SHOWDOWN
    assert len(engine.state.community) == 5
    assert engine.total_chips() == total


@pytest.mark.parametrize(
    "overrides",
    [
        {"small_blind": 0},
        {"small_blind": -5},
        {"small_blind": 10, "big_blind": 5},
        {"starting_stack": 0},
        {"max_seats": 1},
        {"max_seats": MAX_SEATS + 1},
        {"subscriber_queue_size": 0},
    ],
)
def test_table_config_rejects_bad_settings(overrides):
    with pytest.raises(ValueError):
        TableConfig(**overrides)
