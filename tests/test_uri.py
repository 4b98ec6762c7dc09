import pytest

from astrbot_plugin_mediaderive.domain.errors import ErrorCode, UnsafePathError, UnsupportedSchemeError
from astrbot_plugin_mediaderive.domain.uri import SchemeResolver
from astrbot_plugin_mediaderive.types import SchemeConfig

PUBLIC_PATH = "data/files/"


class TestGetScheme:
    def test_scheme_present(self, resolver):
        assert resolver.get_scheme("public://dir/file.jpg") == "public"

    def test_no_scheme_is_none(self, resolver):
        assert resolver.get_scheme("dir/file.jpg") is None

    def test_empty_scheme_differs_from_none(self, resolver):
        assert resolver.get_scheme("://dir/file.jpg") == ""

    def test_only_first_delimiter_counts(self, resolver):
        uri = "public://mirror/http://example.com/a.jpg"
        assert resolver.get_scheme(uri) == "public"
        assert resolver.get_target(uri) == "mirror/http://example.com/a.jpg"


class TestGetTarget:
    def test_target_with_scheme(self, resolver):
        assert resolver.get_target("public://dir/file.jpg") == "dir/file.jpg"

    def test_target_without_scheme(self, resolver):
        assert resolver.get_target("dir/file.jpg") == "dir/file.jpg"


class TestSetScheme:
    def test_replaces_scheme(self, resolver):
        assert resolver.set_scheme("public://a/b.png", "temporary") == "temporary://a/b.png"

    def test_adds_scheme(self, resolver):
        assert resolver.set_scheme("a/b.png", "public") == "public://a/b.png"


class TestResolvePath:
    def test_registered_scheme(self, resolver):
        assert resolver.resolve_path("public://dir/file.jpg") == PUBLIC_PATH + "dir/file.jpg"

    def test_no_scheme_returned_unchanged(self, resolver):
        assert resolver.resolve_path("dir/file.jpg") == "dir/file.jpg"

    def test_unregistered_scheme_raises(self, resolver):
        with pytest.raises(UnsupportedSchemeError, match="Scheme `http` not supported") as exc:
            resolver.resolve_path("http://dir/file.jpg")
        assert exc.value.code is ErrorCode.UNSUPPORTED_SCHEME
        assert exc.value.scheme == "http"

    def test_plain_concatenation(self):
        resolver = SchemeResolver({"public": SchemeConfig(path="/srv/www")})
        assert resolver.resolve_path("public://a.jpg") == "/srv/wwwa.jpg"

    def test_missing_public_scheme_raises(self):
        resolver = SchemeResolver({"temporary": SchemeConfig(path="tmp/")})
        with pytest.raises(UnsupportedSchemeError):
            resolver.resolve_path("public://a.jpg")


class TestGetURL:
    def test_public_scheme(self, resolver):
        assert resolver.get_url("public://dir/file.jpg") == "/" + PUBLIC_PATH + "dir/file.jpg"

    def test_temporary_scheme(self, resolver):
        assert resolver.get_url("temporary://x.png") == "/data/tmp/x.png"

    def test_no_scheme_passes_through(self, resolver):
        assert resolver.get_url("dir/file.jpg") == "dir/file.jpg"

    def test_external_url_passes_through(self, resolver):
        assert resolver.get_url("http://dir/file.jpg") == "http://dir/file.jpg"

    def test_registered_but_private_scheme_passes_through(self):
        resolver = SchemeResolver(
            {"private": SchemeConfig(path="private/")}, public_schemes=("public",)
        )
        assert resolver.get_url("private://a.jpg") == "private://a.jpg"

    def test_custom_public_subset(self):
        resolver = SchemeResolver(
            {"cdn": SchemeConfig(path="cdn/")}, public_schemes=("cdn",)
        )
        assert resolver.get_url("cdn://a.jpg") == "/cdn/a.jpg"


class TestResolveContainedPath:
    @pytest.fixture
    def contained(self, tmp_path):
        root = tmp_path / "files"
        root.mkdir()
        return SchemeResolver(
            {
                "public": SchemeConfig(path=str(root) + "/"),
                "empty": SchemeConfig(path=""),
            }
        )

    def test_inside_root(self, contained, tmp_path):
        assert contained.resolve_contained_path("public://dir/a.jpg") == str(tmp_path / "files" / "dir" / "a.jpg")

    def test_missing_scheme(self, contained):
        with pytest.raises(UnsafePathError) as exc:
            contained.resolve_contained_path("/etc/passwd.png")
        assert exc.value.code is ErrorCode.UNSAFE_PATH

    def test_unregistered_scheme(self, contained):
        with pytest.raises(UnsupportedSchemeError):
            contained.resolve_contained_path("http://example.com/a.jpg")

    @pytest.mark.parametrize(
        "uri",
        [
            "public://../outside.jpg",
            "public://dir/../../outside.jpg",
            "public://dir\\..\\..\\outside.jpg",
            "public:///etc/outside.jpg",
        ],
    )
    def test_escaping_target(self, contained, uri):
        with pytest.raises(UnsafePathError):
            contained.resolve_contained_path(uri)

    def test_symlink_out_of_root(self, contained, tmp_path):
        outside = tmp_path / "outside"
        outside.mkdir()
        (tmp_path / "files" / "link").symlink_to(outside, target_is_directory=True)
        with pytest.raises(UnsafePathError):
            contained.resolve_contained_path("public://link/a.jpg")

    def test_empty_prefix(self, contained):
        with pytest.raises(UnsafePathError):
            contained.resolve_contained_path("empty://a.jpg")
        with pytest.raises(UnsafePathError):
            contained.scheme_root("empty")

    def test_scheme_root(self, contained, tmp_path):
        assert contained.scheme_root("public") == str(tmp_path / "files") + "/"
        with pytest.raises(UnsupportedSchemeError):
            contained.scheme_root("s3")
