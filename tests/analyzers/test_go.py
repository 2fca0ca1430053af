"""Tests for the Go analyzer."""

from __future__ import annotations

from archlens.analyzers import GoAnalyzer
from tests._fixtures.repo_builder import RepoBuilder

GO_MOD = """
module github.com/acme/orders

go 1.22

require github.com/google/uuid v1.6.0

require (
    github.com/gin-gonic/gin v1.9.1
    github.com/stretchr/testify v1.9.0 // indirect
    github.com/google/uuid v1.5.0
)
"""


def test_go_mod_module_version_and_requirements(repo_builder: RepoBuilder) -> None:
    repo_builder.write({"go.mod": GO_MOD, "main.go": "package main\n\nfunc main() {}\n"})

    result = GoAnalyzer().analyze(repo_builder.path(), "demo")

    project = result.projects[0]
    assert project.name == "github.com/acme/orders"
    assert project.target == "go 1.22"
    assert project.output_type == "Exe"
    assert [(dep.name, dep.version) for dep in project.dependencies] == [
        ("github.com/google/uuid", "v1.6.0"),
        ("github.com/gin-gonic/gin", "v1.9.1"),
        ("github.com/stretchr/testify", "v1.9.0"),
    ]
    assert result.conventions.naming_style == "MixedCaps"
    assert result.conventions.test_framework == "testify"


def test_structs_interfaces_and_grouped_declarations(repo_builder: RepoBuilder) -> None:
    repo_builder.write(
        {
            "go.mod": "module example.com/shop\n\ngo 1.21\n",
            "internal/store/store.go": """
            package store

            type OrderStore interface {
                Get(id string) (Order, error)
            }

            type (
                Order struct {
                    ID    string `json:"id"`
                    Total int
                }

                SQLOrderStore struct {
                    *sync.Mutex
                    db *sql.DB
                }
            )
            """,
            "internal/http/handler.go": """
            package http

            type OrderHandler struct {
                BaseHandler
                store OrderStore
                msg   string
            }

            func (h *OrderHandler) Brace() string { return "}" }
            """,
        }
    )

    project = GoAnalyzer().analyze(repo_builder.path(), "demo").projects[0]

    assert project.output_type == "Library"
    assert project.namespaces == ("http", "store")
    (store_iface,) = project.interfaces
    assert store_iface.name == "OrderStore"
    assert store_iface.role == "Repository"
    assert (store_iface.start_line, store_iface.end_line) == (3, 5)

    types = {item.name: item for item in project.types}
    assert set(types) == {"OrderHandler", "Order", "SQLOrderStore"}
    assert types["OrderHandler"].role == "Controller"
    assert types["OrderHandler"].base_types == ("BaseHandler",)
    assert types["SQLOrderStore"].base_types == ("sync.Mutex",)
    assert (types["Order"].start_line, types["Order"].end_line) == (8, 11)
    assert types["Order"].role is None


def test_test_files_and_directory_role(repo_builder: RepoBuilder) -> None:
    repo_builder.write(
        {
            "backend/go.mod": "module backend\n",
            "backend/svc.go": "package svc\n\ntype PaymentService struct{}\n",
            "backend/svc_test.go": "package svc\n\ntype fakeGateway struct{}\n",
        }
    )

    result = GoAnalyzer().analyze(repo_builder.path(), "demo")

    project = result.projects[0]
    assert project.role == "Backend"
    roles = {item.name: item.role for item in project.types}
    assert roles == {"PaymentService": "Service", "fakeGateway": "UnitTest"}
    assert result.conventions.test_framework == "testing"


def test_vendor_directory_is_excluded(repo_builder: RepoBuilder) -> None:
    repo_builder.write(
        {
            "go.mod": "module app\n",
            "app.go": "package app\n\ntype App struct{}\n",
            "vendor/github.com/lib/go.mod": "module github.com/lib\n",
            "vendor/github.com/lib/lib.go": "package lib\n\ntype Vendored struct{}\n",
        }
    )

    result = GoAnalyzer().analyze(repo_builder.path(), "demo")

    assert [project.name for project in result.projects] == ["app"]
    assert [item.name for item in result.projects[0].types] == ["App"]


def test_struct_tag_ending_in_backslash_keeps_spans(repo_builder: RepoBuilder) -> None:
    repo_builder.write(
        {
            "go.mod": "module paths\n",
            "paths.go": (
                "package paths\n"
                "\n"
                "type Paths struct {\n"
                '\tSep string `default:"\\\\" sep:"\\`\n'
                "\tBase\n"
                "}\n"
                "\n"
                "type Y struct {\n"
                "}\n"
            ),
        }
    )

    project = GoAnalyzer().analyze(repo_builder.path(), "demo").projects[0]

    types = {item.name: item for item in project.types}
    assert (types["Paths"].start_line, types["Paths"].end_line) == (3, 6)
    assert types["Paths"].base_types == ("Base",)
    assert (types["Y"].start_line, types["Y"].end_line) == (8, 9)
