"""
API client for communicating with the YouTube Video Analyzer backend.
"""

import time
from typing import Any, Dict, List, Optional
from urllib.parse import urljoin

import requests

from video_analyzer.config import config

TERMINAL_STATUSES = ("completed", "failed")


class ApiClient:
    """Client for interacting with the YouTube Video Analyzer API."""

    def __init__(self, base_url: str = config.PUBLIC_URL, timeout: float = 30):
        """
        Initialize the API client.

        Args:
            base_url: Base URL of the API
            timeout: Per-request timeout in seconds
        """
        self.base_url = base_url
        self.api_base = urljoin(base_url, "/api/v1/")
        self.timeout = timeout

    def _url(self, endpoint: str) -> str:
        """Get the full URL for an endpoint."""
        return urljoin(self.api_base, endpoint)

    def analyze(self, url: str, force_regenerate: bool = False) -> Dict[str, Any]:
        """
        Request a video analysis.

        Args:
            url: YouTube video URL
            force_regenerate: Whether to rerun a finished analysis

        Returns:
            The analysis job record
        """
        response = requests.post(
            self._url("videos/analyze"),
            json={"url": url, "force_regenerate": force_regenerate},
            timeout=self.timeout,
        )
        response.raise_for_status()
        return response.json()

    def get_analysis(self, job_id: str) -> Optional[Dict[str, Any]]:
        """Get an analysis job, or None if the server does not know it."""
        response = requests.get(self._url(f"videos/analyze/{job_id}"), timeout=self.timeout)

        if response.status_code == 404:
            return None

        response.raise_for_status()
        return response.json()

    def list_analyses(self) -> List[Dict[str, Any]]:
        response = requests.get(self._url("videos"), timeout=self.timeout)
        response.raise_for_status()
        return response.json()

    def wait_for_analysis(self, job_id: str, timeout: int = 300, interval: int = 5) -> Dict[str, Any]:
        """
        Poll an analysis job until it completes or fails.

        Args:
            job_id: Analysis job ID
            timeout: Maximum seconds to wait
            interval: Seconds between checks

        Returns:
            The final job record, or a dictionary with an "error" key
        """
        start_time = time.time()
        while time.time() - start_time < timeout:
            job = self.get_analysis(job_id)
            if job is None:
                return {"error": "Analysis not found"}

            if job.get("status") in TERMINAL_STATUSES:
                return job

            time.sleep(interval)

        return {"error": "Timeout waiting for analysis to complete"}

    def cache_status(self, video_id: str) -> Dict[str, Any]:
        response = requests.get(self._url(f"cache/{video_id}"), timeout=self.timeout)
        response.raise_for_status()
        return response.json()

    def cache_stats(self) -> Dict[str, Any]:
        response = requests.get(self._url("cache/stats"), timeout=self.timeout)
        response.raise_for_status()
        return response.json()
