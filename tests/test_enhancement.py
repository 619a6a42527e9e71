from game_import.importing.enhancement import EnhancementGate, EnhancementState


def test_disabled_gate_never_enhances():
    gate = EnhancementGate.for_request(False)
    gate.record_rate_limit("Catan")
    gate.next_item("Azul")

    assert gate.state is EnhancementState.DISABLED
    assert not gate.can_enhance
    assert not gate.rate_limited
    assert gate.history == []


def test_rate_limit_moves_forward_only():
    gate = EnhancementGate.for_request(True)
    assert gate.can_enhance

    gate.next_item("Catan")
    assert gate.state is EnhancementState.ENHANCING

    gate.record_rate_limit("Catan", "429")
    assert gate.state is EnhancementState.RATE_LIMITED
    assert gate.rate_limited
    assert not gate.can_enhance

    gate.next_item("Azul")
    assert gate.state is EnhancementState.INSERTING_ONLY

    gate.record_rate_limit("Azul")
    gate.next_item("Brass")
    assert gate.state is EnhancementState.INSERTING_ONLY
    assert gate.rate_limited


def test_history_records_each_transition():
    gate = EnhancementGate.for_request(True)
    gate.record_rate_limit("Catan", "429")
    gate.next_item("Azul")

    assert [(t.source, t.target, t.item) for t in gate.history] == [
        (EnhancementState.ENHANCING, EnhancementState.RATE_LIMITED, "Catan"),
        (EnhancementState.RATE_LIMITED, EnhancementState.INSERTING_ONLY, "Azul"),
    ]
    assert gate.history[0].reason == "429"
