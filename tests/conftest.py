"""Pytest configuration and fixtures for changeguard tests."""

from pathlib import Path

import pytest

from changeguard.config import AnalysisConfig
from changeguard.impact import ImpactAnalyzer


@pytest.fixture
def sample_project_path() -> Path:
    """Get path to the sample Go project."""
    return Path(__file__).parent / "fixtures" / "sample_project"


@pytest.fixture
def user_go(sample_project_path: Path) -> str:
    return (sample_project_path / "user.go").read_text()


@pytest.fixture
def handler_go(sample_project_path: Path) -> str:
    return (sample_project_path / "handler.go").read_text()


@pytest.fixture
def report_go(sample_project_path: Path) -> str:
    return (sample_project_path / "report.go").read_text()


@pytest.fixture
def analyzer():
    """A fresh analysis session, closed after the test."""
    with ImpactAnalyzer(config=AnalysisConfig()) as session:
        yield session


@pytest.fixture
def indexed_analyzer(analyzer: ImpactAnalyzer, user_go: str, handler_go: str, report_go: str) -> ImpactAnalyzer:
    """Session with the sample project indexed, definitions first."""
    analyzer.index_file("user.go", user_go)
    analyzer.index_file("handler.go", handler_go)
    analyzer.index_file("report.go", report_go)
    return analyzer


@pytest.fixture
def sample_go_code() -> str:
    """Sample Go code exercising every top-level declaration form."""
    return '''package store

import "context"

const (
	MaxItems    = 100
	defaultName = "anon"
)

var Registry map[string]*Item

var _ = context.Background

type ID = int64

type Status string

type Item struct {
	ID   ID
	Name string
}

type Repository interface {
	Get(ctx context.Context, id ID) (*Item, error)
}

type Store struct {
	items map[ID]*Item
}

func NewStore() *Store {
	return &Store{items: map[ID]*Item{}}
}

func (s *Store) Get(ctx context.Context, id ID) (*Item, error) {
	return s.items[id], nil
}

func (s Store) Len() int {
	return len(s.items)
}

func Join(sep string, parts ...string) string {
	return ""
}

func split(a, b int) (x, y int) {
	return a, b
}
'''
