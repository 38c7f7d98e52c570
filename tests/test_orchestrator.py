import pytest

from amo_spam_checker.exceptions import ClassificationError, CRMError
from amo_spam_checker.models import SpamVerdict
from amo_spam_checker.orchestrator import is_marked_as_spam, spam_lead_name

LEAD_PATH = "/api/v4/leads/42"
NOTES_PATH = "/api/v4/leads/42/notes"


def _verdict(is_spam: bool = True) -> SpamVerdict:
    return SpamVerdict(
        phone="79991234567",
        is_spam=is_spam,
        action="Block" if is_spam else "Allow",
        spam_score=100 if is_spam else 0,
        category_name="Мошенники" if is_spam else "Неизвестно",
        region="Moskva",
    )


def test_spam_lead_name() -> None:
    assert spam_lead_name("79991234567", "Звонок") == "СПАМ: +79991234567 (Звонок)"


@pytest.mark.parametrize(
    "name, marked",
    [
        ("СПАМ: +79991234567 (Звонок)", True),
        ("СПАМ : старая пометка", True),
        ("Звонок СПАМ:", False),
        ("спам: lowercase", False),
        ("", False),
    ],
)
def test_is_marked_as_spam(name, marked) -> None:
    assert is_marked_as_spam(name) is marked


@pytest.mark.asyncio
async def test_spam_tag_mode_applies_steps_in_order(make_components, spravportal, amocrm) -> None:
    spravportal.entry = {"action": "Spam"}
    components = make_components(amocrm_spam_action="tag")

    verdict = await components.service.check_and_apply(42, "89991234567")

    assert verdict.is_spam is True
    assert amocrm.calls == [
        ("GET", LEAD_PATH, None),
        ("PATCH", LEAD_PATH, {"name": "СПАМ: +79991234567 (Звонок с сайта)"}),
        ("PATCH", LEAD_PATH, {"_embedded": {"tags": [{"name": "спам"}]}}),
        ("POST", NOTES_PATH, [{"note_type": "common", "params": {"text": amocrm.notes[42][0]}}]),
    ]
    assert "СПАМ-НОМЕР ОБНАРУЖЕН" in amocrm.notes[42][0]
    assert "+79991234567" in amocrm.notes[42][0]
    await components.close()


@pytest.mark.asyncio
async def test_spam_both_mode_moves_status(make_components, spravportal, amocrm) -> None:
    spravportal.entry = {"action": "Block"}
    components = make_components(
        amocrm_spam_action="both",
        amocrm_spam_status_id=555,
        amocrm_spam_pipeline_id=77,
        amocrm_spam_tag_name="spam-call",
    )

    await components.service.check_and_apply(42, "79991234567")

    patches = [body for method, _, body in amocrm.calls if method == "PATCH"]
    assert patches == [
        {"name": "СПАМ: +79991234567 (Звонок с сайта)"},
        {"_embedded": {"tags": [{"name": "spam-call"}]}},
        {"status_id": 555, "pipeline_id": 77},
    ]
    assert amocrm.leads[42]["status_id"] == 555
    assert amocrm.leads[42]["pipeline_id"] == 77
    assert amocrm.writes()[-1][1] == NOTES_PATH
    await components.close()


@pytest.mark.asyncio
async def test_status_mode_without_ids_is_noop(make_components, spravportal, amocrm) -> None:
    spravportal.entry = {"action": "Spam"}
    components = make_components(amocrm_spam_action="status", amocrm_spam_status_id=555)

    await components.service.check_and_apply(42, "79991234567")

    patches = [body for method, _, body in amocrm.calls if method == "PATCH"]
    assert patches == [{"name": "СПАМ: +79991234567 (Звонок с сайта)"}]
    assert len(amocrm.notes[42]) == 1
    await components.close()


@pytest.mark.asyncio
async def test_rename_is_idempotent(make_components, amocrm) -> None:
    components = make_components()
    service = components.service

    assert await service.rename_as_spam(42, _verdict()) is True
    writes_after_first = len(amocrm.writes())
    assert await service.rename_as_spam(42, _verdict()) is True

    assert writes_after_first == 1
    assert len(amocrm.writes()) == 1
    assert amocrm.leads[42]["name"] == "СПАМ: +79991234567 (Звонок с сайта)"
    await components.close()


@pytest.mark.asyncio
async def test_repeated_delivery_renames_once(make_components, spravportal, amocrm) -> None:
    spravportal.entry = {"action": "Spam"}
    components = make_components()

    await components.service.check_and_apply(42, "79991234567")
    await components.service.check_and_apply(42, "79991234567")

    renames = [body for method, _, body in amocrm.calls if method == "PATCH" and "name" in body]
    assert len(renames) == 1
    assert len(amocrm.notes[42]) == 2
    await components.close()


@pytest.mark.asyncio
@pytest.mark.parametrize("failure", [("GET", "lead"), ("PATCH", "name")])
async def test_rename_failure_does_not_abort(make_components, amocrm, failure) -> None:
    amocrm.failures.add(failure)
    components = make_components(amocrm_spam_action="tag")

    await components.service.handle_spam(42, _verdict())

    assert amocrm.leads[42]["_embedded"]["tags"] == [{"name": "спам"}]
    assert len(amocrm.notes[42]) == 1
    await components.close()


@pytest.mark.asyncio
async def test_rename_of_missing_lead_returns_false(make_components) -> None:
    components = make_components()

    assert await components.service.rename_as_spam(999, _verdict()) is False
    await components.close()


@pytest.mark.asyncio
async def test_tag_failure_aborts_remaining_steps(make_components, amocrm) -> None:
    amocrm.failures.add(("PATCH", "tag"))
    components = make_components(
        amocrm_spam_action="both", amocrm_spam_status_id=555, amocrm_spam_pipeline_id=77
    )

    with pytest.raises(CRMError):
        await components.service.handle_spam(42, _verdict())

    assert amocrm.leads[42]["status_id"] == 100
    assert 42 not in amocrm.notes
    await components.close()


@pytest.mark.asyncio
async def test_status_failure_aborts_note(make_components, amocrm) -> None:
    amocrm.failures.add(("PATCH", "status"))
    components = make_components(
        amocrm_spam_action="status", amocrm_spam_status_id=555, amocrm_spam_pipeline_id=77
    )

    with pytest.raises(CRMError):
        await components.service.handle_spam(42, _verdict())

    assert 42 not in amocrm.notes
    await components.close()


@pytest.mark.asyncio
async def test_note_failure_propagates(make_components, amocrm) -> None:
    amocrm.failures.add(("POST", "notes"))
    components = make_components()

    with pytest.raises(CRMError):
        await components.service.handle_clean(42, _verdict(is_spam=False))
    await components.close()


@pytest.mark.asyncio
async def test_clean_verdict_only_adds_note(make_components, spravportal, amocrm) -> None:
    spravportal.entry = {"action": "Allow", "phoneInfo": {"operator": "Билайн"}}
    components = make_components(
        amocrm_spam_action="both", amocrm_spam_status_id=555, amocrm_spam_pipeline_id=77
    )

    verdict = await components.service.check_and_apply(42, "89991234567")

    assert verdict.is_spam is False
    assert [(m, p) for m, p, _ in amocrm.calls] == [("POST", NOTES_PATH)]
    note = amocrm.notes[42][0]
    assert note.startswith("✅ НОМЕР ПРОВЕРЕН")
    assert "📱 Оператор: Билайн" in note
    assert amocrm.leads[42]["name"] == "Звонок с сайта"
    await components.close()


@pytest.mark.asyncio
async def test_classification_failure_mutates_nothing(make_components, spravportal, amocrm) -> None:
    spravportal.status_code = 503
    components = make_components()

    with pytest.raises(ClassificationError):
        await components.service.check_and_apply(42, "89991234567")

    assert amocrm.calls == []
    await components.close()
