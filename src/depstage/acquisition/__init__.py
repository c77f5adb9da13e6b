"""Artifact acquisition: streaming download with checksum verification."""
from depstage.acquisition.download import DownloadResult, VerificationState, checksum_matches, download_artifact

__all__ = ["DownloadResult", "VerificationState", "checksum_matches", "download_artifact"]
