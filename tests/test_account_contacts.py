"""
Account contact relation tests: linking, primary flags and delete guards.
"""

from orbitcore.engine.builder import build_event
from orbitcore.engine.fold import fold_events
from orbitcore.models import AccountContact, AccountContactRole, EventType

BILLING = AccountContactRole.BILLING.value
TECHNICAL = AccountContactRole.TECHNICAL.value


def _event(event_type, payload, ts, entity_id=None):
    return build_event(event_type, payload, "device-a", entity_id=entity_id, timestamp=ts)


def _seed_state():
    return fold_events(
        [
            _event(EventType.ORGANIZATION_CREATED, {"id": "org-1", "name": "Acme"}, "2024-01-01T09:00:00Z"),
            _event(
                EventType.ACCOUNT_CREATED,
                {"id": "acct-1", "organizationId": "org-1", "name": "Comcast Center"},
                "2024-01-01T09:01:00Z",
            ),
            _event(EventType.CONTACT_CREATED, {"id": "contact-1", "firstName": "Ada"}, "2024-01-01T09:02:00Z"),
            _event(EventType.CONTACT_CREATED, {"id": "contact-2", "firstName": "Grace"}, "2024-01-01T09:03:00Z"),
        ]
    )


def _link(relation_id, contact_id, role, ts, is_primary=None):
    payload = {"id": relation_id, "accountId": "acct-1", "contactId": contact_id, "role": role}
    if is_primary is not None:
        payload["isPrimary"] = is_primary
    return _event(EventType.ACCOUNT_CONTACT_LINKED, payload, ts)


def test_link_creates_relation():
    state = fold_events([_link("rel-1", "contact-1", BILLING, "2024-02-01T00:00:00Z", True)], _seed_state())

    assert state.account_contacts == {
        "rel-1": AccountContact(
            account_id="acct-1",
            contact_id="contact-1",
            role=AccountContactRole.BILLING,
            is_primary=True,
        )
    }


def test_link_resolves_relation_id_from_envelope():
    event = _event(
        EventType.ACCOUNT_CONTACT_LINKED,
        {"accountId": "acct-1", "contactId": "contact-1", "role": BILLING},
        "2024-02-01T00:00:00Z",
        entity_id="rel-9",
    )

    state = fold_events([event], _seed_state())

    assert state.account_contacts["rel-9"].is_primary is False


def test_invalid_links_are_skipped():
    seeded = fold_events([_link("rel-1", "contact-1", BILLING, "2024-02-01T00:00:00Z", True)], _seed_state())
    bad_events = [
        _event(
            EventType.ACCOUNT_CONTACT_LINKED,
            {"id": "rel-2", "accountId": "acct-404", "contactId": "contact-1", "role": BILLING},
            "2024-02-02T00:00:00Z",
        ),
        _event(
            EventType.ACCOUNT_CONTACT_LINKED,
            {"id": "rel-3", "accountId": "acct-1", "contactId": "contact-404", "role": BILLING},
            "2024-02-02T00:00:01Z",
        ),
        _link("rel-1", "contact-2", TECHNICAL, "2024-02-02T00:00:02Z"),
        _link("rel-4", "contact-1", BILLING, "2024-02-02T00:00:03Z"),
        _link("rel-5", "contact-2", BILLING, "2024-02-02T00:00:04Z", True),
        _link("rel-6", "contact-2", "account.contact.role.unknown", "2024-02-02T00:00:05Z"),
    ]

    assert fold_events(bad_events, seeded) == seeded


def test_set_primary_keeps_one_primary_per_role():
    state = fold_events(
        [
            _link("rel-1", "contact-1", BILLING, "2024-02-01T00:00:00Z", True),
            _link("rel-2", "contact-2", BILLING, "2024-02-01T00:00:01Z"),
            _link("rel-3", "contact-2", TECHNICAL, "2024-02-01T00:00:02Z", True),
            _event(
                EventType.ACCOUNT_CONTACT_SET_PRIMARY,
                {"accountId": "acct-1", "contactId": "contact-2", "role": BILLING},
                "2024-02-01T00:00:03Z",
            ),
        ],
        _seed_state(),
    )

    assert state.account_contacts["rel-1"].is_primary is False
    assert state.account_contacts["rel-2"].is_primary is True
    assert state.account_contacts["rel-3"].is_primary is True


def test_set_primary_rejects_mismatched_relation():
    seeded = fold_events([_link("rel-1", "contact-1", BILLING, "2024-02-01T00:00:00Z")], _seed_state())
    mismatched = _event(
        EventType.ACCOUNT_CONTACT_SET_PRIMARY,
        {"id": "rel-1", "accountId": "acct-1", "contactId": "contact-2", "role": BILLING},
        "2024-02-02T00:00:00Z",
    )

    assert fold_events([mismatched], seeded) == seeded


def test_unset_primary_clears_flag():
    state = fold_events(
        [
            _link("rel-1", "contact-1", BILLING, "2024-02-01T00:00:00Z", True),
            _event(
                EventType.ACCOUNT_CONTACT_UNSET_PRIMARY,
                {"id": "rel-1", "accountId": "acct-1", "contactId": "contact-1", "role": BILLING},
                "2024-02-01T00:00:01Z",
            ),
        ],
        _seed_state(),
    )

    assert state.account_contacts["rel-1"].is_primary is False


def test_unlink_removes_every_role_for_the_pair():
    state = fold_events(
        [
            _link("rel-1", "contact-1", BILLING, "2024-02-01T00:00:00Z"),
            _link("rel-2", "contact-1", TECHNICAL, "2024-02-01T00:00:01Z"),
            _link("rel-3", "contact-2", BILLING, "2024-02-01T00:00:02Z"),
            _event(
                EventType.ACCOUNT_CONTACT_UNLINKED,
                {"accountId": "acct-1", "contactId": "contact-1"},
                "2024-02-01T00:00:03Z",
            ),
        ],
        _seed_state(),
    )

    assert set(state.account_contacts) == {"rel-3"}

    missing = _event(
        EventType.ACCOUNT_CONTACT_UNLINKED,
        {"accountId": "acct-1", "contactId": "contact-1"},
        "2024-02-01T00:00:04Z",
    )
    assert fold_events([missing], state) == state


def test_account_delete_is_blocked_while_contacts_are_linked():
    linked = fold_events([_link("rel-1", "contact-1", BILLING, "2024-02-01T00:00:00Z")], _seed_state())
    delete = _event(EventType.ACCOUNT_DELETED, {"id": "acct-1"}, "2024-02-02T00:00:00Z")

    assert fold_events([delete], linked) == linked

    unlinked = fold_events(
        [
            _event(
                EventType.ACCOUNT_CONTACT_UNLINKED,
                {"accountId": "acct-1", "contactId": "contact-1"},
                "2024-02-02T00:00:00Z",
            ),
            _event(EventType.ACCOUNT_DELETED, {"id": "acct-1"}, "2024-02-02T00:00:01Z"),
        ],
        linked,
    )
    assert "acct-1" not in unlinked.accounts


def test_contact_delete_drops_its_relations():
    linked = fold_events(
        [
            _link("rel-1", "contact-1", BILLING, "2024-02-01T00:00:00Z"),
            _link("rel-2", "contact-2", BILLING, "2024-02-01T00:00:01Z"),
        ],
        _seed_state(),
    )

    state = fold_events([_event(EventType.CONTACT_DELETED, {"id": "contact-1"}, "2024-02-02T00:00:00Z")], linked)

    assert "contact-1" not in state.contacts
    assert set(state.account_contacts) == {"rel-2"}
