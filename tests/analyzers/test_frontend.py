"""Tests for the frontend (package.json) analyzer."""

from __future__ import annotations

from archlens.analyzers import FrontendAnalyzer
from archlens.analyzers.frontend import is_frontend_manifest
from tests._fixtures.repo_builder import RepoBuilder

PACKAGE_JSON = """
{
  "name": "storefront",
  "dependencies": {"react": "^18.2.0", "axios": "^1.6.0"},
  "devDependencies": {"vitest": "^1.2.0", "react": "^17.0.0"}
}
"""


def test_probe_requires_ui_framework_dependency(repo_builder: RepoBuilder) -> None:
    repo_builder.write(
        {"tools/package.json": '{"name": "scripts", "dependencies": {"lodash": "4.17.21"}}'}
    )
    analyzer = FrontendAnalyzer()

    assert not analyzer.can_analyze(repo_builder.path())
    assert analyzer.analyze(repo_builder.path(), "demo").projects == ()

    repo_builder.write({"web/package.json": PACKAGE_JSON})

    assert analyzer.can_analyze(repo_builder.path())


def test_is_frontend_manifest_accepts_angular_scope() -> None:
    assert is_frontend_manifest({"dependencies": {"@angular/core": "17.0.0"}})
    assert not is_frontend_manifest({"dependencies": ["react"]})


def test_components_classes_and_interfaces(repo_builder: RepoBuilder) -> None:
    repo_builder.write(
        {
            "package.json": PACKAGE_JSON,
            "src/components/Button.tsx": """
            import React from "react";

            export interface ButtonProps extends BaseProps {
              label: string;
            }

            export default function Button({ label }: ButtonProps) {
              return <button>{label}</button>;
            }
            """,
            "src/pages/Home.tsx": """
            export const Home = ({ title = "}" }: { title?: string }) => {
              return <main>{title}</main>;
            };
            """,
            "src/services/api.ts": """
            export class OrderService extends BaseService implements Disposable {
              dispose(): void {}
            }
            """,
            "src/hooks/useCart.ts": """
            export function useCart() {
              return { items: [] };
            }
            """,
            "src/lib/constants.ts": "export const LIMIT = 10;\n",
            "src/types.d.ts": "export interface Ignored {}\n",
            "src/components/Button.test.tsx": """
            import { render } from "@testing-library/react";

            test("renders", () => {});
            """,
        }
    )

    result = FrontendAnalyzer().analyze(repo_builder.path(), "demo")

    project = result.projects[0]
    assert project.name == "storefront"
    assert project.ecosystem == "typescript"
    assert project.role == "Frontend"
    assert "Frontend" in project.patterns
    assert [(dep.name, dep.version) for dep in project.dependencies] == [
        ("react", "^18.2.0"),
        ("axios", "^1.6.0"),
        ("vitest", "^1.2.0"),
    ]

    types = {item.name: item for item in project.types}
    assert types["OrderService"].base_types == ("BaseService", "Disposable")
    assert types["OrderService"].role == "Service"
    assert (types["OrderService"].start_line, types["OrderService"].end_line) == (1, 3)
    assert types["Home"].role == "Page"
    assert types["Home"].kind == "component"
    assert (types["Home"].start_line, types["Home"].end_line) == (1, 3)
    assert types["useCart"].role == "Hook"
    assert types["constants"].kind == "module"
    assert types["Button"].role == "UnitTest"
    assert types["Button"].file_path == "src/components/Button.test.tsx"
    assert "Ignored" not in types

    (props,) = project.interfaces
    assert props.name == "ButtonProps"
    assert props.role == "Component"
    assert props.base_types == ("BaseProps",)
    assert props.namespace == "src/components"
    assert result.conventions.naming_style == "camelCase"
    assert result.conventions.test_framework == "Vitest"


def test_node_modules_packages_are_ignored(repo_builder: RepoBuilder) -> None:
    repo_builder.write(
        {
            "package.json": PACKAGE_JSON,
            "src/App.tsx": "export function App() {\n  return null;\n}\n",
            "node_modules/react/package.json": '{"name": "react", "dependencies": {"vue": "3"}}',
            "node_modules/react/index.js": "export class Internal {}\n",
            "dist/bundle.js": "export class Bundled {}\n",
        }
    )

    result = FrontendAnalyzer().analyze(repo_builder.path(), "demo")

    assert [project.name for project in result.projects] == ["storefront"]
    assert [item.name for item in result.projects[0].types] == ["App"]


def test_malformed_package_json_is_skipped(repo_builder: RepoBuilder) -> None:
    repo_builder.write(
        {
            "broken/package.json": '{"name": "broken", "dependencies": {',
            "web/package.json": '{"dependencies": {"vue": "^3.4.0"}}',
            "web/src/main.ts": "export class AppStore {}\n",
        }
    )

    result = FrontendAnalyzer().analyze(repo_builder.path(), "demo")

    assert [project.name for project in result.projects] == ["web"]


def test_folder_roles_match_whole_segments(repo_builder: RepoBuilder) -> None:
    repo_builder.write(
        {
            "package.json": PACKAGE_JSON,
            "src/pagination/Pager.ts": "export class Pager {\n}\n",
            "src/webhooks/Dispatcher.ts": "export class Dispatcher {\n}\n",
            "src/layouts/Shell.tsx": "export function Shell() {\n  return null;\n}\n",
        }
    )

    project = FrontendAnalyzer().analyze(repo_builder.path(), "demo").projects[0]

    roles = {item.name: item.role for item in project.types}
    assert roles == {"Pager": None, "Dispatcher": None, "Shell": "Layout"}


def test_regex_literal_in_method_keeps_class_span(repo_builder: RepoBuilder) -> None:
    repo_builder.write(
        {
            "package.json": PACKAGE_JSON,
            "src/services/UrlService.ts": r"""
            export class UrlService {
              isAbsolute(s: string): boolean {
                if (/^https?:\/\//.test(s)) {
                  return true;
                }
                return false;
              }
            }
            """,
        }
    )

    project = FrontendAnalyzer().analyze(repo_builder.path(), "demo").projects[0]

    (service,) = project.types
    assert (service.start_line, service.end_line) == (1, 8)
