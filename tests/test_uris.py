"""Tests for SFC <-> generated URI translation."""

from unittest.mock import patch

from vleam_lsp.paths import to_original_path
from vleam_lsp.uris import UriTranslator, is_original_uri, path_to_uri, uri_to_path


class TestUriHelpers:

    def test_round_trip(self, tmp_path):
        path = tmp_path / "src" / "App.vue"
        assert uri_to_path(path_to_uri(path)) == path

    def test_non_file_uri(self):
        assert uri_to_path("untitled:Untitled-1") is None
        assert uri_to_path(None) is None

    def test_is_original_uri(self, tmp_path):
        assert is_original_uri(path_to_uri(tmp_path / "App.vue"))
        assert not is_original_uri(path_to_uri(tmp_path / "app.gleam"))
        assert not is_original_uri("untitled:App.vue")


class TestToGenerated:

    def test_derives_generated_uri(self, settings):
        translator = UriTranslator(settings)
        uri = translator.to_generated(path_to_uri(settings.source_path / "Components" / "Counter.vue"))
        assert uri == path_to_uri(settings.generated_path / "components" / "counter.gleam")

    def test_idempotent(self, settings):
        translator = UriTranslator(settings)
        original = path_to_uri(settings.source_path / "App.vue")
        assert translator.to_generated(original) == translator.to_generated(original)

    def test_non_file_uri(self, settings):
        assert UriTranslator(settings).to_generated("untitled:App.vue") is None

    def test_outside_source_dir(self, settings):
        assert UriTranslator(settings).to_generated(path_to_uri(settings.project_root / "lib" / "Foo.vue")) is None


class TestToComposite:

    def test_registered_mapping(self, settings):
        translator = UriTranslator(settings)
        translator.register("file:///gen/app.gleam", "file:///src/App.vue")
        assert translator.to_composite("file:///gen/app.gleam") == "file:///src/App.vue"

    def test_register_overwrites(self, settings):
        translator = UriTranslator(settings)
        translator.register("file:///gen/app.gleam", "file:///src/App.vue")
        translator.register("file:///gen/app.gleam", "file:///src/APP.vue")
        assert translator.to_composite("file:///gen/app.gleam") == "file:///src/APP.vue"
        assert len(translator) == 1

    def test_lazy_directory_scan(self, settings, write_sfc):
        original = write_sfc("Views/Home.vue", "")
        translator = UriTranslator(settings)
        generated_uri = path_to_uri(settings.generated_path / "views" / "home.gleam")

        assert translator.to_composite(generated_uri) == path_to_uri(original)

    def test_scan_result_is_cached(self, settings, write_sfc):
        write_sfc("Views/Home.vue", "")
        translator = UriTranslator(settings)
        generated_uri = path_to_uri(settings.generated_path / "views" / "home.gleam")
        first = translator.to_composite(generated_uri)

        with patch("vleam_lsp.uris.to_original_path") as scan:
            assert translator.to_composite(generated_uri) == first
            scan.assert_not_called()

    def test_miss_is_not_cached(self, settings):
        translator = UriTranslator(settings)
        generated_uri = path_to_uri(settings.generated_path / "views" / "home.gleam")

        with patch("vleam_lsp.uris.to_original_path", wraps=to_original_path) as scan:
            assert translator.to_composite(generated_uri) is None
            assert translator.to_composite(generated_uri) is None
            assert scan.call_count == 2
        assert len(translator) == 0

    def test_outside_generated_root_is_not_scanned(self, settings):
        translator = UriTranslator(settings)
        with patch("vleam_lsp.uris.to_original_path") as scan:
            assert translator.to_composite(path_to_uri(settings.source_path / "app.gleam")) is None
            scan.assert_not_called()

    def test_empty_uri(self, settings):
        assert UriTranslator(settings).to_composite(None) is None
        assert UriTranslator(settings).to_composite("") is None

    def test_lru_eviction(self, settings):
        settings.max_tracked_entries = 2
        translator = UriTranslator(settings)
        translator.register("file:///gen/a.gleam", "file:///src/A.vue")
        translator.register("file:///gen/b.gleam", "file:///src/B.vue")
        translator.to_composite("file:///gen/a.gleam")  # a is now most recent
        translator.register("file:///gen/c.gleam", "file:///src/C.vue")

        assert translator.cached("file:///gen/a.gleam") == "file:///src/A.vue"
        assert translator.cached("file:///gen/b.gleam") is None
        assert translator.cached("file:///gen/c.gleam") == "file:///src/C.vue"
