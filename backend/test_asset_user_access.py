"""
backend/test_asset_user_access.py

Tests for access logging, context correction, display names and report scopes.

Run: pytest backend/test_asset_user_access.py -v
"""

from datetime import datetime, timedelta

import pytest

from backend import asset_user_access as accesses
from backend.db import execute_query
from backend.models import AccessedAsset, ContextRef

COURSE = ContextRef("Course", 10)
GROUP = ContextRef("Group", 20)


def log_view(conn, code="wiki_page_300", user_id=2, context=COURSE, **kwargs):
    return accesses.log(conn, user_id, context, AccessedAsset(code=code, **kwargs))


class TestLog:
    """Look-up-or-create and counter bumps."""

    def test_logging_a_view_increments_view_score(self, conn):
        access = log_view(conn, category="pages")

        assert access is not None
        assert access.id is not None
        assert access.view_score == 1
        assert access.participate_score is None
        assert access.action_level == "view"
        assert access.last_access is not None

    def test_level_defaults_to_view(self, conn):
        accessed = AccessedAsset(code="wiki_page_300")
        access = accesses.log(conn, 2, COURSE, accessed)

        assert access.action_level == "view"
        assert accessed.level is None, "caller's payload should not be mutated"

    def test_second_log_reuses_row(self, conn):
        first = log_view(conn)
        second = log_view(conn)

        assert first.id == second.id
        assert second.view_score == 2
        assert len(accesses.find_accesses(conn, user_id=2)) == 1

    def test_rows_are_per_user_and_context(self, conn):
        mine = log_view(conn, user_id=2)
        theirs = log_view(conn, user_id=3)
        other_context = log_view(conn, context=GROUP)

        assert len({mine.id, theirs.id, other_context.id}) == 3

    def test_participate_counts_as_view_and_participation(self, conn):
        access = log_view(conn, level="participate")

        assert access.view_score == 1
        assert access.participate_score == 1
        assert access.action_level == "participate"

    def test_submit_counts_only_participation(self, conn):
        access = log_view(conn, level="submit")

        assert access.view_score is None
        assert access.participate_score == 1
        assert access.action_level == "participate"

    def test_participate_level_is_sticky(self, conn):
        log_view(conn, level="participate")
        access = log_view(conn, level="view")

        assert access.action_level == "participate"
        assert access.view_score == 2
        assert access.participate_score == 1

    def test_first_seen_metadata_wins(self, conn):
        log_view(conn, category="pages", group_code="wiki", membership_type="StudentEnrollment")
        access = log_view(conn, category="files", group_code="other", membership_type="TeacherEnrollment")

        assert access.asset_category == "pages"
        assert access.category == "pages"
        assert access.asset_group_code == "wiki"
        assert access.membership_type == "StudentEnrollment"

    def test_persisted_values_round_trip(self, conn):
        log_view(conn, category="pages", level="participate")
        [stored] = accesses.find_accesses(conn, user_id=2)

        assert stored.view_score == 1
        assert stored.participate_score == 1
        assert isinstance(stored.view_score, int)
        assert stored.asset_category == "pages"
        assert isinstance(stored.last_access, datetime)
        assert stored.context == COURSE


class TestLogNoOps:
    """Best-effort: anything unattributable is silently skipped."""

    def test_without_user(self, conn):
        assert log_view(conn, user_id=None) is None

    def test_without_asset_code(self, conn):
        assert accesses.log(conn, 2, COURSE, AccessedAsset(code=None)) is None
        assert accesses.log(conn, 2, COURSE, AccessedAsset(code="")) is None

    def test_without_context(self, conn):
        assert log_view(conn, context=None) is None

    def test_context_row_missing(self, conn):
        assert log_view(conn, context=ContextRef("Course", 999)) is None

    def test_context_type_not_loggable(self, conn):
        assert log_view(conn, context=ContextRef("Assignment", 100)) is None

    def test_nothing_written(self, conn):
        log_view(conn, user_id=None)
        log_view(conn, context=ContextRef("Course", 999))

        assert accesses.count_accesses(conn) == 0


class TestCorrectContext:
    def test_files_are_logged_against_attachment_owner(self, conn):
        access = accesses.log(conn, 2, COURSE, AccessedAsset(code="attachment_201", category="files"))

        assert access.context == GROUP
        assert access.display_name == "notes.txt"

    def test_missing_attachment_skips(self, conn):
        assert accesses.log(conn, 2, COURSE, AccessedAsset(code="attachment_999", category="files")) is None

    def test_malformed_attachment_code_skips(self, conn):
        assert accesses.log(conn, 2, COURSE, AccessedAsset(code="attachment", category="files")) is None

    def test_attachment_outside_files_category_keeps_context(self, conn):
        access = accesses.log(conn, 2, COURSE, AccessedAsset(code="attachment_201", category="pages"))

        assert access.context == COURSE

    def test_user_profile_maps_to_user(self, conn):
        access = log_view(conn, code="profile", context=ContextRef("UserProfile", 30))

        assert access.context == ContextRef("User", 2)
        assert access.context_code == "user_2"

    def test_assessment_question_maps_to_its_context(self, conn):
        access = log_view(conn, code="assessment_question_40", context=ContextRef("AssessmentQuestion", 40))

        assert access.context == COURSE

    def test_other_contexts_pass_through(self, conn):
        context = ContextRef("Course", 10)
        assert accesses.get_correct_context(conn, context, AccessedAsset(code="home")) is context


class TestDefaults:
    """Derived values stamped on every save."""

    @pytest.mark.parametrize("code,expected", [
        ("wiki_page_300", "Welcome"),
        ("assignments:assignment_100", "Lab Report"),
        ("quizzes:quiz_400", "Quiz 1"),
        ("modules:context_module_500", "Week 1"),
        ("roster:enrollment_800", "Sam Student"),
        ("collaborations:collaboration_700", "collaborations:collaboration_700"),
    ])
    def test_display_name_from_asset(self, conn, code, expected):
        assert log_view(conn, code=code).display_name == expected

    def test_display_name_none_without_asset(self, conn):
        assert log_view(conn, code="home:course_10").display_name is None

    def test_asset_must_belong_to_context(self, conn):
        # discussion_topic_600 lives in the group, not the course
        assert log_view(conn, code="discussion_topic_600").display_name is None
        assert log_view(conn, code="discussion_topic_600", context=GROUP).display_name == "Meetup"

    def test_root_account_from_course(self, conn):
        assert log_view(conn).root_account_id == 1

    def test_root_account_of_root_account_is_itself(self, conn):
        assert log_view(conn, code="settings", context=ContextRef("Account", 1)).root_account_id == 1

    def test_root_account_of_sub_account(self, conn):
        assert log_view(conn, code="settings", context=ContextRef("Account", 2)).root_account_id == 1

    def test_user_context_has_no_root_account(self, conn):
        assert log_view(conn, code="dashboard", context=ContextRef("User", 2)).root_account_id is None


class TestDerivedAttributes:
    def test_asset_class_name(self, conn):
        assert accesses.asset_class_name(conn, log_view(conn, code="quizzes:quiz_400")) == "quiz"
        assert accesses.asset_class_name(conn, log_view(conn, code="wiki_page_300")) == "wiki_page"
        assert accesses.asset_class_name(conn, log_view(conn, code="home:course_10")) is None

    def test_infer_asset_ignores_context(self, conn):
        found = accesses.infer_asset(conn, "topics:discussion_topic_600")

        assert found is not None
        assert found.title == "Meetup"
        assert found.context == GROUP

    def test_infer_asset_unknown(self, conn):
        assert accesses.infer_asset(conn, "gizmo_1") is None
        assert accesses.infer_asset(conn, "assignment_999") is None

    def test_display_name_repair(self, conn):
        access = log_view(conn)
        execute_query(
            conn,
            "UPDATE asset_user_accesses SET display_name = asset_code WHERE id = :id",
            {"id": access.id},
        )
        stale = accesses.get_access(conn, access.id)
        assert stale.display_name == "wiki_page_300"

        assert accesses.display_name(conn, stale) == "Welcome"
        assert accesses.get_access(conn, access.id).display_name == "Welcome"

    def test_display_name_left_alone_when_nothing_better(self, conn):
        access = log_view(conn, code="collaborations:collaboration_700")

        assert accesses.display_name(conn, access) == "collaborations:collaboration_700"


class TestReadableName:
    @pytest.mark.parametrize("tool,expected", [
        ("announcements", "Course Announcements"),
        ("calendar_feed", "Course Calendar"),
        ("roster", "Course People"),
        ("speed_grader", "SpeedGrader"),
        ("topics", "Course Discussions"),
        ("grades", "Course Grades"),
        ("external_tools", "Course External Tools"),
    ])
    def test_course_tools(self, conn, tool, expected):
        access = log_view(conn, code=f"{tool}:course_10")
        assert accesses.readable_name(conn, access) == expected

    @pytest.mark.parametrize("tool,expected", [
        ("announcements", "Study Buddies - Group Announcements"),
        ("roster", "Study Buddies - Group People"),
        ("files", "Study Buddies - Group Files"),
        ("wiki_sidebar", "Study Buddies - Group Wiki Sidebar"),
    ])
    def test_group_tools(self, conn, tool, expected):
        access = log_view(conn, code=f"{tool}:group_20", context=GROUP)
        assert accesses.readable_name(conn, access) == expected

    def test_unknown_group_falls_back_to_display_name(self, conn):
        access = log_view(conn, code="home:group_999", context=GROUP)
        assert accesses.readable_name(conn, access) == ""

    def test_asset_scoped_code_uses_display_name(self, conn):
        access = log_view(conn, code="quizzes:quiz_400")
        assert accesses.readable_name(conn, access) == "Quiz 1"

    def test_plain_code_strips_code_prefix(self, conn):
        access = log_view(conn)
        access.display_name = "wiki_page_300 - Welcome"
        assert accesses.readable_name(conn, access) == "Welcome"

    def test_plain_code_without_display_name(self, conn):
        access = log_view(conn, code="dashboard", context=ContextRef("User", 2))
        assert accesses.readable_name(conn, access) == ""

    def test_titleize(self):
        assert accesses.titleize("calendar_feed") == "Calendar Feed"
        assert accesses.titleize("user_id") == "User"
        assert accesses.titleize("wiki") == "Wiki"


class TestScopes:
    @pytest.fixture
    def clock(self, monkeypatch):
        ticks = iter(datetime(2024, 1, 1) + timedelta(minutes=i) for i in range(100))
        monkeypatch.setattr(accesses, "utcnow", lambda: next(ticks))

    def test_for_user(self, conn):
        log_view(conn, user_id=2)
        log_view(conn, user_id=3)

        assert [a.user_id for a in accesses.find_accesses(conn, user_id=3)] == [3]

    def test_for_context(self, conn):
        log_view(conn, code="home:course_10")
        log_view(conn, code="home:group_20", context=GROUP)

        rows = accesses.find_accesses(conn, context=GROUP)
        assert [a.asset_code for a in rows] == ["home:group_20"]

    def test_participations(self, conn):
        log_view(conn, code="wiki_page_300")
        log_view(conn, code="assignment_100", level="submit")

        rows = accesses.find_accesses(conn, participations=True)
        assert [a.asset_code for a in rows] == ["assignment_100"]
        assert accesses.count_accesses(conn, participations=True) == 1

    def test_most_recent_first(self, conn, clock):
        log_view(conn, code="wiki_page_300")
        log_view(conn, code="assignment_100")
        log_view(conn, code="wiki_page_300")

        rows = accesses.find_accesses(conn, user_id=2, most_recent=True)
        assert [a.asset_code for a in rows] == ["wiki_page_300", "assignment_100"]

    def test_limit_and_offset(self, conn, clock):
        for code in ("wiki_page_300", "assignment_100", "quizzes:quiz_400"):
            log_view(conn, code=code)

        rows = accesses.find_accesses(conn, limit=1, offset=1)
        assert [a.asset_code for a in rows] == ["assignment_100"]
        assert accesses.count_accesses(conn) == 3
