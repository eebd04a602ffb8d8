from apps.ticketing.tickets.state import TicketStateMachine, TicketStatus


def test_ticket_state_machine_allows_expected_transitions():
    assert TicketStateMachine.initial_state() == TicketStatus.OPEN
    assert TicketStateMachine.can_transition(TicketStatus.OPEN, TicketStatus.SCANNED)
    assert TicketStateMachine.can_transition(TicketStatus.OPEN, TicketStatus.VOID)
    assert TicketStateMachine.can_transition(TicketStatus.SCANNED, TicketStatus.SCANNED)


def test_ticket_state_machine_blocks_invalid_transitions():
    assert not TicketStateMachine.can_transition(TicketStatus.SCANNED, TicketStatus.OPEN)
    assert not TicketStateMachine.can_transition(TicketStatus.VOID, TicketStatus.OPEN)
    assert not TicketStateMachine.can_transition(TicketStatus.VOID, TicketStatus.SCANNED)


def test_predecessors_list_statuses_a_move_may_start_from():
    assert TicketStateMachine.predecessors(TicketStatus.SCANNED) == {TicketStatus.OPEN, TicketStatus.SCANNED}
    assert TicketStateMachine.predecessors(TicketStatus.VOID) == {TicketStatus.OPEN, TicketStatus.VOID}
    assert TicketStateMachine.predecessors(TicketStatus.OPEN) == {TicketStatus.OPEN}


def test_only_open_tickets_count_as_unused():
    assert TicketStateMachine.is_unused(TicketStatus.OPEN)
    assert not TicketStateMachine.is_unused(TicketStatus.SCANNED)
    assert not TicketStateMachine.is_unused(TicketStatus.VOID)
