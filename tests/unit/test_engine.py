from concurrent.futures import ThreadPoolExecutor

from assistant.engine.conversation import CHANGE_PROMPT, NOT_UNDERSTOOD, NOTHING_TO_CANCEL, ConversationEngine
from assistant.engine.types import ActionKind, CorrectionCandidate, TurnDecision
from assistant.nlu.keyword import KeywordExtractor


def _start_assignment(engine, conversation_id="conv1"):
    return engine.handle_turn(
        conversation_id,
        CorrectionCandidate(
            action=ActionKind.CREATE_ASSIGNMENT,
            parameters={"course_name": "math", "title": "Essay"},
            new_intent=True,
        ),
    )


def test_invite_flow_completes_over_two_turns(engine, action_store):
    first = engine.handle_turn(
        "conv1",
        CorrectionCandidate(action="INVITE_STUDENT", parameters={"course_name": "english"}, new_intent=True),
    )

    assert first.ready is False
    assert first.decision is TurnDecision.NEW_ACTION
    assert first.prompt == (
        "To invite student I have the course name (english). "
        "What's the email address of the student you'd like to invite?"
    )

    second = engine.handle_turn("conv1", CorrectionCandidate(parameters={"email": "John@School.edu"}, confidence=0.6))

    assert second.ready is True
    assert second.decision is TurnDecision.CONTINUATION
    assert second.action is ActionKind.INVITE_STUDENT
    assert second.parameters == {"course_name": "english", "email": "john@school.edu"}
    assert action_store.get("conv1") is None


def test_correction_overwrites_and_announces(engine, action_store):
    _start_assignment(engine)

    result = engine.handle_turn(
        "conv1",
        CorrectionCandidate(parameters={"course_name": "physics"}, correction_marker=True),
    )

    assert result.decision is TurnDecision.CORRECTION
    assert result.notice == "Got it, using physics instead of math for the course name."
    assert result.prompt.startswith("To create assignment I have the course name (physics) and title (Essay).")
    assert action_store.get("conv1").collected_parameters["course_name"] == "physics"


def test_relative_dates_are_resolved_before_merge(engine):
    _start_assignment(engine)

    result = engine.handle_turn(
        "conv1",
        CorrectionCandidate(parameters={"due_date": "next friday", "due_time": "5 PM"}),
    )

    assert result.ready is True
    assert result.parameters["due_date"] == "2025-01-03"
    assert result.parameters["due_time"] == "17:00"


def test_unresolved_date_is_dropped_and_reprompted(engine, action_store):
    _start_assignment(engine)

    result = engine.handle_turn("conv1", CorrectionCandidate(parameters={"due_date": "someday"}))

    assert result.ready is False
    assert result.issues == ['I couldn\'t understand "someday" as a date for the due date.']
    assert "When is it due?" in result.prompt
    assert "due_date" not in action_store.get("conv1").collected_parameters


def test_new_action_replaces_unfinished_one_silently(engine, action_store):
    engine.handle_turn("conv1", CorrectionCandidate(action="INVITE_STUDENT", parameters={"course_name": "english"}))

    result = engine.handle_turn(
        "conv1",
        CorrectionCandidate(action="CREATE_MEETING", parameters={"title": "Sync"}, new_intent=True),
    )

    assert result.decision is TurnDecision.NEW_ACTION
    assert result.notice is None
    entry = action_store.get("conv1")
    assert entry.action is ActionKind.CREATE_MEETING
    assert "course_name" not in entry.collected_parameters


def test_abandoned_action_can_be_announced(action_store, clock):
    engine = ConversationEngine(action_store, clock=clock, announce_abandoned=True)
    engine.handle_turn("conv1", CorrectionCandidate(action="INVITE_STUDENT"))

    result = engine.handle_turn("conv1", CorrectionCandidate(action="CREATE_MEETING", new_intent=True))

    assert result.notice == "I've cancelled the previous request to invite student."


def test_weak_different_action_keeps_current_one(engine, action_store):
    engine.handle_turn("conv1", CorrectionCandidate(action="INVITE_STUDENT", parameters={"course_name": "english"}))

    result = engine.handle_turn("conv1", CorrectionCandidate(action="CREATE_MEETING", confidence=0.5))

    assert result.decision is TurnDecision.CONTINUATION
    assert 'say "cancel" first' in result.notice
    assert action_store.get("conv1").action is ActionKind.INVITE_STUDENT


def test_cancel_clears_ongoing_action(engine, action_store):
    engine.handle_turn("conv1", CorrectionCandidate(action="INVITE_STUDENT"))

    result = engine.handle_turn("conv1", CorrectionCandidate(cancel=True))

    assert result.decision is TurnDecision.CANCEL
    assert result.notice == "Got it! I've stopped working on your request to invite student."
    assert action_store.get("conv1") is None


def test_cancel_with_nothing_in_progress(engine):
    result = engine.handle_turn("conv1", CorrectionCandidate(cancel=True))

    assert result.prompt == NOTHING_TO_CANCEL


def test_unknown_action_is_not_understood(engine):
    result = engine.handle_turn("conv1", CorrectionCandidate(action="TELEPORT"))

    assert result.decision is TurnDecision.UNRECOGNIZED
    assert result.prompt == NOT_UNDERSTOOD


def test_unknown_action_repeats_pending_question(engine, action_store):
    engine.handle_turn("conv1", CorrectionCandidate(action="INVITE_STUDENT", parameters={"course_name": "english"}))

    result = engine.handle_turn("conv1", CorrectionCandidate(action="TELEPORT", new_intent=True))

    assert result.notice == NOT_UNDERSTOOD
    assert "email address" in result.prompt
    assert action_store.get("conv1").action is ActionKind.INVITE_STUDENT


def test_late_follow_up_after_expiry_is_not_understood(engine, clock):
    engine.handle_turn("conv1", CorrectionCandidate(action="INVITE_STUDENT", parameters={"course_name": "english"}))
    clock.advance(minutes=31)

    result = engine.handle_turn("conv1", CorrectionCandidate(parameters={"email": "a@b.com"}))

    assert result.decision is TurnDecision.UNRECOGNIZED
    assert result.ready is False


def test_concurrent_turns_do_not_lose_updates(engine):
    engine.handle_turn("conv1", CorrectionCandidate(action="CREATE_ASSIGNMENT", parameters={"course_name": "math"}))
    answers = [{"title": "Essay"}, {"due_date": "tomorrow"}, {"due_time": "noon"}]

    with ThreadPoolExecutor(max_workers=len(answers)) as pool:
        results = list(
            pool.map(lambda params: engine.handle_turn("conv1", CorrectionCandidate(parameters=params)), answers)
        )

    ready = [result for result in results if result.ready]
    assert len(ready) == 1
    assert ready[0].parameters == {
        "course_name": "math",
        "title": "Essay",
        "due_date": "2025-01-02",
        "due_time": "12:00",
    }


def _correct_into_complete_assignment(engine):
    _start_assignment(engine)
    engine.handle_turn("conv1", CorrectionCandidate(parameters={"due_date": "tomorrow"}))
    return engine.handle_turn(
        "conv1",
        CorrectionCandidate(parameters={"course_name": "physics", "due_time": "noon"}, correction_marker=True),
    )


def test_correction_that_completes_asks_for_confirmation(engine, action_store):
    result = _correct_into_complete_assignment(engine)

    assert result.ready is False
    assert result.decision is TurnDecision.CORRECTION
    assert result.awaiting_confirmation is True
    assert result.notice == "Got it, using physics instead of math for the course name."
    assert result.prompt.startswith(
        "I'll create assignment with the course name (physics), title (Essay), "
        "due date (2025-01-02) and due time (12:00). Is this correct?"
    )
    assert action_store.get("conv1").awaiting_confirmation is True

    confirmed = engine.handle_turn("conv1", CorrectionCandidate(confirmation=True))

    assert confirmed.ready is True
    assert confirmed.decision is TurnDecision.CONFIRMATION
    assert confirmed.parameters == {
        "course_name": "physics",
        "title": "Essay",
        "due_date": "2025-01-02",
        "due_time": "12:00",
    }
    assert action_store.get("conv1") is None


def test_rejected_confirmation_waits_for_a_change(engine, action_store):
    _correct_into_complete_assignment(engine)

    rejected = engine.handle_turn("conv1", CorrectionCandidate(confirmation=False))

    assert rejected.ready is False
    assert rejected.prompt == CHANGE_PROMPT
    assert action_store.get("conv1").awaiting_confirmation is True

    changed = engine.handle_turn(
        "conv1",
        CorrectionCandidate(parameters={"due_time": "5 PM"}, correction_marker=True, confirmation=False),
    )

    assert changed.ready is False
    assert changed.awaiting_confirmation is True
    assert "due time (17:00)" in changed.prompt

    confirmed = engine.handle_turn("conv1", CorrectionCandidate(confirmation=True))

    assert confirmed.ready is True
    assert confirmed.parameters["due_time"] == "17:00"


def test_unclear_reply_repeats_the_confirmation_question(engine, action_store):
    _correct_into_complete_assignment(engine)

    result = engine.handle_turn("conv1", CorrectionCandidate())

    assert result.ready is False
    assert 'Please say "yes" to create assignment' in result.prompt
    assert action_store.get("conv1").awaiting_confirmation is True


def test_new_course_is_confirmed_before_creation(engine, action_store):
    first = engine.handle_turn(
        "conv1",
        CorrectionCandidate(action="CREATE_COURSE", parameters={"name": "ai"}, new_intent=True),
    )

    assert first.ready is False
    assert first.prompt == (
        'I\'ll create a course called "ai". Is this correct? '
        'Please confirm with "yes" or "no", or tell me what to change.'
    )

    confirmed = engine.handle_turn("conv1", CorrectionCandidate(confirmation=True))

    assert confirmed.ready is True
    assert confirmed.parameters == {"name": "ai"}


def test_rejected_course_name_is_asked_again(engine, action_store):
    engine.handle_turn(
        "conv1",
        CorrectionCandidate(action="CREATE_COURSE", parameters={"name": "ai", "room": "B12"}, new_intent=True),
    )

    rejected = engine.handle_turn("conv1", CorrectionCandidate(confirmation=False))

    assert rejected.ready is False
    assert rejected.notice == "No problem!"
    assert rejected.prompt == "What would you like to call your new class?"
    entry = action_store.get("conv1")
    assert entry.collected_parameters == {"room": "B12"}
    assert entry.awaiting_confirmation is False

    renamed = engine.handle_turn("conv1", CorrectionCandidate(parameters={"name": "Biology"}, confidence=0.6))

    assert renamed.ready is False
    assert 'create a course called "Biology"' in renamed.prompt


def test_weak_action_hint_that_completes_asks_for_confirmation(engine, action_store):
    engine.handle_turn(
        "conv1",
        CorrectionCandidate(action="CREATE_ANNOUNCEMENT", parameters={"course_name": "ai"}, new_intent=True),
    )

    result = engine.handle_turn(
        "conv1",
        CorrectionCandidate(
            action="CREATE_ASSIGNMENT",
            parameters={"announcement_text": "Homework 3 is due next friday"},
            confidence=0.5,
        ),
    )

    assert result.ready is False
    assert result.action is ActionKind.CREATE_ANNOUNCEMENT
    assert result.awaiting_confirmation is True
    assert "announcement text (Homework 3 is due next friday)" in result.prompt


def test_recalled_value_that_completes_asks_for_confirmation(engine):
    result = engine.handle_turn(
        "conv1",
        CorrectionCandidate(
            action="LIST_ASSIGNMENTS",
            parameters={"course_name": "biology"},
            new_intent=True,
            inferred=["course_name"],
        ),
    )

    assert result.ready is False
    assert result.awaiting_confirmation is True
    assert "course name (biology)" in result.prompt


def test_announcement_flow_with_keyword_extractor(engine, action_store):
    extractor = KeywordExtractor()

    def say(text):
        return engine.handle_turn("conv1", extractor.extract(text, action_store.get("conv1")))

    first = say("post announcement to my class")
    assert first.action is ActionKind.CREATE_ANNOUNCEMENT
    assert first.prompt == "Which course should I post this announcement in?"

    second = say("the class name is ai")
    assert second.decision is TurnDecision.CONTINUATION
    assert second.prompt.endswith("What would you like to announce?")

    third = say("Please stop by my office hours on Monday")
    assert third.ready is True
    assert third.parameters == {
        "course_name": "ai",
        "announcement_text": "Please stop by my office hours on Monday",
    }


def test_free_text_with_action_keyword_is_confirmed_not_switched(engine, action_store):
    extractor = KeywordExtractor()

    def say(text):
        return engine.handle_turn("conv1", extractor.extract(text, action_store.get("conv1")))

    say("post an announcement to the class ai")
    pending = say("Homework 3 is due next friday")

    assert pending.ready is False
    assert pending.action is ActionKind.CREATE_ANNOUNCEMENT
    assert pending.awaiting_confirmation is True

    confirmed = say("yes")

    assert confirmed.ready is True
    assert confirmed.parameters == {"course_name": "ai", "announcement_text": "Homework 3 is due next friday"}
