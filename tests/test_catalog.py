"""Tests for the YAML recipe catalog."""

import textwrap

import pytest

from brewcore.catalog import Catalog, load_file, package_from_dict
from brewcore.dependencies import recursive_dependencies
from brewcore.errors import FormulaUnavailableError, RecipeError
from brewcore.specs import Variant

from conftest import install_keg


WGET = """
homepage: https://www.gnu.org/software/wget/
revision: 1
stable:
  url: https://ftp.gnu.org/gnu/wget/wget-1.16.tar.xz
  bottle: true
  depends_on:
    - openssl
    - {name: pkg-config, tags: [build]}
  requirements:
    - {kind: platform, name: linux}
  options:
    - {name: with-libidn, description: Build with IDN support}
head:
  url: git://git.savannah.gnu.org/wget.git
install:
  - [./configure, "--prefix={prefix}"]
  - [make, install]
"""


def write_recipe(root, name, text):
    root.mkdir(parents=True, exist_ok=True)
    path = root / f"{name}.yaml"
    path.write_text(textwrap.dedent(text))
    return path


@pytest.fixture
def formula_dir(brew_paths, tmp_path):
    root = tmp_path / "Formula"
    write_recipe(root, "wget", WGET)
    write_recipe(root, "openssl", "url: https://www.openssl.org/source/openssl-1.0.2a.tar.gz\n")
    write_recipe(root, "pkg-config", "url: https://pkgconfig.freedesktop.org/releases/pkg-config-0.28.tar.gz\n")
    return root


class TestLoad:
    def test_full_recipe(self, formula_dir):
        pkg = Catalog().load("wget")
        assert pkg.name == "wget"
        assert str(pkg.pkg_version) == "1.16_1"
        assert pkg.is_bottled()
        assert [d.name for d in pkg.deps] == ["openssl", "pkg-config"]
        assert pkg.deps[1].is_build()
        assert pkg.requirements[0].key == "platform:linux"
        assert pkg.option_defined("with-libidn")
        assert pkg.options[0].description == "Build with IDN support"
        assert pkg.head is not None
        assert pkg.install_steps == [["./configure", "--prefix={prefix}"], ["make", "install"]]

    def test_shorthand_is_stable(self, formula_dir):
        pkg = Catalog().load("openssl")
        assert pkg.active_variant is Variant.STABLE
        assert str(pkg.version) == "1.0.2a"

    def test_requested_variant(self, formula_dir):
        assert Catalog().load("wget", Variant.HEAD).is_head()

    def test_case_insensitive_fallback(self, formula_dir):
        assert Catalog().load("WGET").name == "wget"

    def test_missing_recipe(self, formula_dir):
        with pytest.raises(FormulaUnavailableError):
            Catalog().load("nope")
        with pytest.raises(LookupError):
            Catalog()["nope"]

    def test_unknown_requirement_kind(self, tmp_path):
        path = write_recipe(tmp_path / "f", "odd", """
            url: https://example.com/odd-1.0.tar.gz
            requirements:
              - {kind: telepathy}
        """)
        with pytest.raises(RecipeError) as exc:
            load_file(str(path))
        assert exc.value.name == "odd"
        assert "telepathy" in exc.value.reason

    def test_not_a_mapping(self, tmp_path):
        path = write_recipe(tmp_path / "f", "list", "- a\n- b\n")
        with pytest.raises(RecipeError):
            load_file(str(path))

    def test_package_from_dict(self):
        pkg = package_from_dict("x", "/x.yaml", {"url": "https://a/x-3.1.tgz", "keg_only": "system"})
        assert str(pkg.version) == "3.1"
        assert pkg.is_keg_only()


class TestCatalog:
    def test_names_and_each(self, formula_dir):
        write_recipe(formula_dir, "broken", "stable: {}\n")
        catalog = Catalog()
        assert catalog.names() == ["broken", "openssl", "pkg-config", "wget"]
        assert [p.name for p in catalog.each()] == ["openssl", "pkg-config", "wget"]

    def test_as_resolver(self, formula_dir):
        catalog = Catalog()
        deps = recursive_dependencies(catalog.load("wget"), catalog.resolve)
        assert sorted(n.name for n in deps) == ["openssl", "pkg-config"]

    def test_installed(self, formula_dir, layout):
        install_keg(layout, "openssl", "1.0.2a")
        install_keg(layout, "ghost", "1.0")
        assert [p.name for p in Catalog().installed(layout)] == ["openssl"]


class TestBrokenRecipes:
    def test_each_skips_undecodable_recipe(self, formula_dir):
        (formula_dir / "bad.yaml").write_bytes(b"url: https://example.com/bad-1.0.tar.gz\n\xff\xfe\n")
        assert [p.name for p in Catalog().each()] == ["openssl", "pkg-config", "wget"]
        with pytest.raises(RecipeError):
            Catalog().load("bad")

    @pytest.mark.parametrize("body", [
        "stable: oops\n",
        "stable: [a, b]\n",
        "url: https://example.com/x-1.0.tar.gz\nhead: oops\n",
        "url: https://example.com/x-1.0.tar.gz\npatches: [3]\n",
        "url: https://example.com/x-1.0.tar.gz\ndepends_on: [[a, b]]\n",
        "url: https://example.com/x-1.0.tar.gz\nrevision: later\n",
    ])
    def test_malformed_sections_become_recipe_errors(self, formula_dir, body):
        write_recipe(formula_dir, "bad", body)
        with pytest.raises(RecipeError):
            Catalog().load("bad")
        assert [p.name for p in Catalog().each()] == ["openssl", "pkg-config", "wget"]


class TestRecipeVersions:
    def test_unquoted_decimal_version_rejected(self, tmp_path):
        path = write_recipe(tmp_path / "f", "foo", """
            url: https://example.com/download
            version: 1.10
        """)
        with pytest.raises(RecipeError) as exc:
            load_file(str(path))
        assert "quoted" in exc.value.reason

    def test_quoted_version_kept_verbatim(self, tmp_path):
        path = write_recipe(tmp_path / "f", "foo", """
            url: https://example.com/download
            version: "1.10"
        """)
        assert str(load_file(str(path)).version) == "1.10"

    def test_integer_version_accepted(self, tmp_path):
        path = write_recipe(tmp_path / "f", "foo", """
            url: https://example.com/download
            version: 20140101
        """)
        assert str(load_file(str(path)).version) == "20140101"
