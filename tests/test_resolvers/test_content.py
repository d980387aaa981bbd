from media_resolver.resolvers.base import ContentType, StoryContext
from media_resolver.resolvers.content import (
    classify_content_type,
    extract_content_id,
    extract_story_context,
    identify_content,
)


class TestClassifyContentType:
    def test_post(self):
        assert classify_content_type("/p/ABC123/") == ContentType.POST

    def test_reel(self):
        assert classify_content_type("/reel/XYZ7890/") == ContentType.REEL

    def test_tv(self):
        assert classify_content_type("/tv/LONGVIDEO1/") == ContentType.TV

    def test_story(self):
        assert classify_content_type("/stories/alice/17890000000012345/") == ContentType.STORY

    def test_defaults_to_post(self):
        assert classify_content_type("/explore/") == ContentType.POST
        assert classify_content_type("/") == ContentType.POST
        assert classify_content_type("") == ContentType.POST


class TestExtractContentId:
    def test_post_shortcode(self):
        assert extract_content_id("/p/ABC123/") == "ABC123"

    def test_reel_shortcode(self):
        assert extract_content_id("/reel/XYZ7890/") == "XYZ7890"

    def test_longest_segment_wins(self):
        # Marker position drift: the shortcode is still the longest segment
        assert extract_content_id("/someone/p/Cx1234567/") == "Cx1234567"

    def test_ties_keep_path_order(self):
        assert extract_content_id("/abc/def/") == "abc"

    def test_no_segments(self):
        assert extract_content_id("/p/") is None


class TestExtractStoryContext:
    def test_user_and_id(self):
        assert extract_story_context("/stories/alice/17890000000012345/") == StoryContext(
            username="alice", story_id="17890000000012345"
        )

    def test_user_only(self):
        assert extract_story_context("/stories/alice/") == StoryContext(username="alice", story_id=None)

    def test_non_numeric_id_is_ignored(self):
        assert extract_story_context("/stories/alice/highlights/") == StoryContext(username="alice")

    def test_not_a_story(self):
        assert extract_story_context("/p/ABC123/") is None


def test_identify_story_content():
    context = identify_content("/stories/alice/17890000000012345/")
    assert context.content_type == ContentType.STORY
    assert context.story == StoryContext(username="alice", story_id="17890000000012345")


def test_identify_post_content_has_no_story():
    context = identify_content("/p/ABC123/")
    assert context.content_type == ContentType.POST
    assert context.content_id == "ABC123"
    assert context.story is None
