"""Lifecycle rules exercised directly against the service (no HTTP)."""
import pytest

from bulletin.errors import AuthorizationError, NotFoundError, ValidationError
from bulletin.schemas.announcement import AnnouncementForm
from bulletin.schemas.auth import CallerIdentity

HUNDRED_WORDS = " ".join(f"word{i}" for i in range(100))


@pytest.fixture
def created(service, db_session, teacher, generator):
    item = service.create(
        db_session,
        teacher,
        AnnouncementForm(
            title="Midterm Schedule",
            description="Midterms start on Monday in the main hall.",
            tags='["exams", "schedule"]',
            category="Academic",
        ),
    )
    generator.summary_calls.clear()
    generator.image_calls.clear()
    return item


# ---------- create ----------

def test_create_derives_summary_and_image(service, db_session, teacher, generator):
    item = service.create(
        db_session,
        teacher,
        AnnouncementForm(title="Midterm Schedule", description=HUNDRED_WORDS, tags='["exams","schedule"]'),
    )
    assert item.summary == "Generated summary 1"
    assert item.image_url == "https://images.example.com/1.jpg"
    assert generator.summary_calls == [HUNDRED_WORDS]
    assert generator.image_calls == [("Midterm Schedule", ["exams", "schedule"])]
    assert item.category == "All"
    assert item.audience == "Both"
    assert item.author_id == teacher.id


def test_create_with_manual_summary_skips_generation(service, db_session, teacher, generator):
    item = service.create(
        db_session, teacher, AnnouncementForm(title="T", description="D", summary="My own summary")
    )
    assert item.summary == "My own summary"
    assert generator.summary_calls == []
    assert len(generator.image_calls) == 1


def test_create_requires_teacher_role(service, db_session):
    student = CallerIdentity(id="33333333-3333-4333-8333-333333333333", role="student")
    with pytest.raises(AuthorizationError):
        service.create(db_session, student, AnnouncementForm(title="T", description="D"))


def test_create_rejects_before_side_effects(service, db_session, teacher, generator, upload_root, make_upload):
    form = AnnouncementForm(
        title="T", description="D", staff='[{"name": "X", "email": "broken"}]'
    )
    with pytest.raises(ValidationError) as exc:
        service.create(db_session, teacher, form, [make_upload("a.pdf")])
    assert exc.value.error_code == "INVALID_EMAIL"
    assert generator.summary_calls == [] and generator.image_calls == []
    assert list(upload_root.iterdir()) == []
    assert service.list_announcements(db_session) == []


def test_create_requires_title_and_description(service, db_session, teacher):
    with pytest.raises(ValidationError) as exc:
        service.create(db_session, teacher, AnnouncementForm(title="  ", description="D"))
    assert exc.value.error_code == "MISSING_FIELDS"


def test_create_deduplicates_files_in_one_batch(service, db_session, teacher, upload_root, make_upload):
    item = service.create(
        db_session,
        teacher,
        AnnouncementForm(title="T", description="D"),
        [make_upload("notes.pdf"), make_upload("notes.pdf"), make_upload("map.png", b"png", "image/png")],
    )
    assert [a.file_name for a in item.attachments] == ["notes.pdf", "map.png"]
    assert [a.position for a in item.attachments] == [0, 1]
    assert len(list(upload_root.iterdir())) == 2


# ---------- update: summary policy ----------

def test_update_description_regenerates_summary(service, db_session, teacher, generator, created):
    item = service.update(db_session, teacher, created.id, AnnouncementForm(description="New details."))
    assert generator.summary_calls == ["New details."]
    assert item.summary == "Generated summary 1"
    assert item.original_description == "New details."


def test_update_differing_manual_summary_wins_over_description_change(
    service, db_session, teacher, generator, created
):
    item = service.update(
        db_session, teacher, created.id, AnnouncementForm(description="New details.", summary="Hand written.")
    )
    assert item.summary == "Hand written."
    assert generator.summary_calls == []


def test_update_manual_summary_equal_to_stored_keeps_it(service, db_session, teacher, generator, created):
    stored = created.summary
    item = service.update(
        db_session,
        teacher,
        created.id,
        AnnouncementForm(title="Final Schedule", description="Changed text.", summary=stored),
    )
    assert item.summary == stored
    assert generator.summary_calls == []
    assert generator.image_calls == [("Final Schedule", ["exams", "schedule"])]


def test_update_empty_manual_summary_requests_regeneration(service, db_session, teacher, generator, created):
    item = service.update(db_session, teacher, created.id, AnnouncementForm(summary=""))
    assert generator.summary_calls == ["Midterms start on Monday in the main hall."]
    assert item.summary == "Generated summary 1"


def test_update_without_relevant_changes_keeps_derived_fields(service, db_session, teacher, generator, created):
    before = (created.summary, created.image_url)
    item = service.update(
        db_session,
        teacher,
        created.id,
        AnnouncementForm(title="Midterm Schedule", tags='["exams", "schedule"]', audience="Students"),
    )
    assert (item.summary, item.image_url) == before
    assert item.audience == "Students"
    assert generator.summary_calls == [] and generator.image_calls == []


# ---------- update: image policy ----------

def test_update_title_regenerates_image(service, db_session, teacher, generator, created):
    item = service.update(db_session, teacher, created.id, AnnouncementForm(title="Endterm Schedule"))
    assert generator.image_calls == [("Endterm Schedule", ["exams", "schedule"])]
    assert item.image_url == "https://images.example.com/1.jpg"


def test_update_reordered_tags_count_as_changed(service, db_session, teacher, generator, created):
    service.update(db_session, teacher, created.id, AnnouncementForm(tags='["schedule", "exams"]'))
    assert generator.image_calls == [("Midterm Schedule", ["schedule", "exams"])]


def test_update_leaves_absent_fields_untouched(service, db_session, teacher, created):
    item = service.update(db_session, teacher, created.id, AnnouncementForm(category="Placement"))
    assert item.category == "Placement"
    assert item.title == "Midterm Schedule"
    assert item.tags == ["exams", "schedule"]


def test_update_parse_failure_changes_nothing(service, db_session, teacher, generator, created):
    with pytest.raises(ValidationError):
        service.update(
            db_session, teacher, created.id, AnnouncementForm(title="Changed", students="[{broken")
        )
    db_session.expire_all()
    assert service.get(db_session, created.id).title == "Midterm Schedule"
    assert generator.image_calls == []


def test_update_by_other_teacher_is_forbidden(service, db_session, other_teacher, created):
    with pytest.raises(AuthorizationError):
        service.update(db_session, other_teacher, created.id, AnnouncementForm(title="Hijacked"))
    db_session.expire_all()
    assert service.get(db_session, created.id).title == "Midterm Schedule"


def test_update_unknown_id_is_not_found(service, db_session, teacher):
    with pytest.raises(NotFoundError):
        service.update(
            db_session, teacher, "44444444-4444-4444-8444-444444444444", AnnouncementForm(title="x")
        )


def test_malformed_id_is_validation_error(service, db_session, teacher):
    with pytest.raises(ValidationError) as exc:
        service.update(db_session, teacher, "not-an-id", AnnouncementForm(title="x"))
    assert exc.value.error_code == "INVALID_ID"


# ---------- regenerate image ----------

def test_regenerate_image_uses_trimmed_custom_url(service, db_session, teacher, generator, created):
    item = service.regenerate_image(db_session, teacher, created.id, "  https://cdn.example.com/x.png ")
    assert item.image_url == "https://cdn.example.com/x.png"
    assert generator.image_calls == []


def test_regenerate_image_blank_custom_url_regenerates(service, db_session, teacher, generator, created):
    service.regenerate_image(db_session, teacher, created.id, "   ")
    assert generator.image_calls == [("Midterm Schedule", ["exams", "schedule"])]


def test_regenerate_image_adopts_relative_url_verbatim(service, db_session, teacher, generator, created):
    item = service.regenerate_image(db_session, teacher, created.id, "  /uploads/cover.png  ")
    assert item.image_url == "/uploads/cover.png"
    assert generator.image_calls == []


# ---------- attachments ----------

def test_upload_same_name_twice_is_stored_once(service, db_session, teacher, created, upload_root, make_upload):
    added, _ = service.upload_attachments(db_session, teacher, created.id, [make_upload("rules.pdf")])
    assert len(added) == 1
    added, item = service.upload_attachments(db_session, teacher, created.id, [make_upload("rules.pdf")])
    assert added == []
    assert [a.file_name for a in item.attachments] == ["rules.pdf"]
    assert len(list(upload_root.iterdir())) == 1


def test_upload_requires_files(service, db_session, teacher, created):
    with pytest.raises(ValidationError) as exc:
        service.upload_attachments(db_session, teacher, created.id, [])
    assert exc.value.error_code == "NO_FILES"


def test_delete_attachment_removes_file_and_record(
    service, db_session, teacher, created, upload_root, make_upload
):
    added, _ = service.upload_attachments(
        db_session, teacher, created.id, [make_upload("a.pdf"), make_upload("b.pdf")]
    )
    item = service.delete_attachment(db_session, teacher, created.id, added[0].id)
    assert [a.file_name for a in item.attachments] == ["b.pdf"]
    assert [a.position for a in item.attachments] == [0]
    assert len(list(upload_root.iterdir())) == 1


def test_delete_attachment_proceeds_when_file_is_missing(
    service, db_session, teacher, created, upload_root, make_upload
):
    added, _ = service.upload_attachments(db_session, teacher, created.id, [make_upload("a.pdf")])
    for path in upload_root.iterdir():
        path.unlink()
    item = service.delete_attachment(db_session, teacher, created.id, added[0].id)
    assert item.attachments == []


def test_delete_unknown_attachment_leaves_list_untouched(service, db_session, teacher, created, make_upload):
    service.upload_attachments(db_session, teacher, created.id, [make_upload("a.pdf")])
    with pytest.raises(NotFoundError) as exc:
        service.delete_attachment(db_session, teacher, created.id, "55555555-5555-4555-8555-555555555555")
    assert exc.value.error_code == "ATTACHMENT_NOT_FOUND"
    db_session.expire_all()
    assert [a.file_name for a in service.get(db_session, created.id).attachments] == ["a.pdf"]


# ---------- delete ----------

def test_delete_removes_record_and_files(service, db_session, teacher, created, upload_root, make_upload):
    service.upload_attachments(db_session, teacher, created.id, [make_upload("a.pdf"), make_upload("b.pdf")])
    service.delete(db_session, teacher, created.id)
    assert list(upload_root.iterdir()) == []
    with pytest.raises(NotFoundError):
        service.get(db_session, created.id)


def test_delete_proceeds_when_backing_files_are_missing_or_unsafe(
    service, db_session, teacher, created, upload_root, make_upload
):
    added, _ = service.upload_attachments(
        db_session, teacher, created.id, [make_upload("a.pdf"), make_upload("b.pdf"), make_upload("c.pdf")]
    )
    a_name, b_name, _ = (att.file_url.rsplit("/", 1)[1] for att in added)
    (upload_root / a_name).unlink()
    outside = upload_root.parent / "outside.pdf"
    outside.write_bytes(b"keep")
    added[1].file_url = "/uploads/../outside.pdf"
    db_session.commit()

    service.delete(db_session, teacher, created.id)

    assert [p.name for p in upload_root.iterdir()] == [b_name]
    assert outside.exists()
    with pytest.raises(NotFoundError):
        service.get(db_session, created.id)


def test_delete_by_other_teacher_is_forbidden(service, db_session, other_teacher, created):
    with pytest.raises(AuthorizationError):
        service.delete(db_session, other_teacher, created.id)
    assert service.get(db_session, created.id).id == created.id


# ---------- list ----------

def test_list_filters_by_author_and_category(service, db_session, teacher, other_teacher):
    service.create(db_session, teacher, AnnouncementForm(title="A", description="d", category="Academic"))
    service.create(db_session, other_teacher, AnnouncementForm(title="B", description="d", category="Sports/Cultural"))

    assert {x.title for x in service.list_announcements(db_session, category="All")} == {"A", "B"}
    assert [x.title for x in service.list_announcements(db_session, category="Academic")] == ["A"]
    assert [x.title for x in service.list_announcements(db_session, author_id=other_teacher.id)] == ["B"]


def test_list_rejects_malformed_author_id(service, db_session):
    with pytest.raises(ValidationError) as exc:
        service.list_announcements(db_session, author_id="abc")
    assert exc.value.error_code == "INVALID_AUTHOR_ID"
