"""Pytest configuration and fixtures for PRD QA pipeline tests."""

import json

import cv2
import numpy as np
import pytest

from prd_qa.client import GenerationClient
from prd_qa.models import Attachment, InputBundle, Finding
from prd_qa.runtime import MockLLMRuntime

# Keywords that only appear in one system instruction each
ANALYSIS_KEY = "gap analysis"
TEST_PLAN_KEY = "test plan author"
PRIORITIZATION_KEY = "test prioritization"
TRACEABILITY_KEY = "coverage report"

HEADER_ROW = "| Test Case ID | Test Type | Summary | Preconditions | Test Steps | Expected Result | Story ID | Risk Type |"
SEPARATOR_ROW = "|---|---|---|---|---|---|---|---|"
LOGIN_ROW = "| TC-1 | Manual | Login works | None | Open app → Enter creds → Click login | Redirect to dashboard | US-101 | Low |"

CLIP_FPS = 10
CLIP_FRAME_COUNT = 30


@pytest.fixture
def login_markdown():
    return "\n".join([HEADER_ROW, SEPARATOR_ROW, LOGIN_ROW])


@pytest.fixture
def two_case_markdown():
    return "\n".join([
        HEADER_ROW,
        SEPARATOR_ROW,
        LOGIN_ROW,
        "| TC-2 | Automated | Wrong password rejected | User exists | Open app → Enter bad password | Error shown | US-101 | High |",
    ])


@pytest.fixture
def clip(tmp_path):
    """A 3 second MJPEG clip whose brightness rises frame by frame."""
    path = tmp_path / "walkthrough.avi"
    writer = cv2.VideoWriter(str(path), cv2.VideoWriter_fourcc(*"MJPG"), CLIP_FPS, (64, 48))
    for i in range(CLIP_FRAME_COUNT):
        writer.write(np.full((48, 64, 3), i * 8, dtype=np.uint8))
    writer.release()
    return path


@pytest.fixture
def sample_inputs():
    return InputBundle(
        prd_text="Users sign in with email and password and land on the dashboard.",
        design_url="https://www.figma.com/file/login",
    )


@pytest.fixture
def sample_findings():
    return [
        Finding(category="Missing Error State", description="No lockout rule after failed sign-ins",
                source_story_id="US-101"),
        Finding(category="Ambiguity", description="Dashboard landing page is not defined"),
    ]


@pytest.fixture
def image_attachment():
    return Attachment(
        temp_id="img-1",
        name="login.png",
        size=3,
        mime_type="image/png",
    ).mark_ready(data_url="data:image/png;base64,AAAA")


@pytest.fixture
def video_attachment():
    return Attachment(
        temp_id="vid-1",
        name="walkthrough.mp4",
        size=10,
        mime_type="video/mp4",
    ).mark_ready(frames=["data:image/jpeg;base64,F1", "data:image/jpeg;base64,F2"])


def plan_response(markdown, gherkin="Feature: Login\n  Scenario: Valid login"):
    return json.dumps({"markdown": markdown, "gherkin": gherkin})


@pytest.fixture
def pipeline_responses(login_markdown):
    """Responses for a complete, successful run over the login table."""
    return {
        ANALYSIS_KEY: json.dumps({"findings": [
            {"category": "Ambiguity", "description": "Dashboard is undefined", "source_story_id": "US-101"}
        ]}),
        TEST_PLAN_KEY: plan_response(login_markdown),
        PRIORITIZATION_KEY: json.dumps({"prioritized_cases": [
            {"test_case_id": "TC-1", "priority": "P1", "reasoning": "Auth is critical"}
        ]}),
        TRACEABILITY_KEY: json.dumps({"matrix": [
            {"story_id": "US-101", "test_case_ids": ["TC-1"]}
        ]}),
        "QA documentation": "# QA Documentation\n\nStrategy...",
        "Enhance the following PRD": "# Enhanced PRD\n\nUsers sign in...",
    }


@pytest.fixture
def mock_runtime(pipeline_responses):
    """Create mock LLM runtime with predefined responses."""
    return MockLLMRuntime(pipeline_responses)


@pytest.fixture
def client(mock_runtime):
    return GenerationClient(mock_runtime)
