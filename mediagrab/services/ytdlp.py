import asyncio
import logging
from typing import List, NamedTuple, Optional

from mediagrab.config.settings import config
from mediagrab.core.state import state

logger = logging.getLogger(__name__)

# Printed by yt-dlp once the file has reached its final location
FILEPATH_TEMPLATE = "after_move:filepath"


class CompletedProcess(NamedTuple):
    """Subprocess result"""
    returncode: int
    stdout: bytes
    stderr: bytes


class SubprocessExecutor:
    """Execute subprocess with consistent error handling"""

    @staticmethod
    async def run(
        cmd: List[str],
        timeout: float,
        capture_stderr: bool = True
    ) -> CompletedProcess:
        """
        Run subprocess with timeout and proper cleanup.
        The process is killed on timeout or cancellation so nothing leaks.
        """
        logger.debug("Running %s", " ".join(cmd[:2]))
        process = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE if capture_stderr else asyncio.subprocess.DEVNULL,
            stdin=asyncio.subprocess.DEVNULL
        )

        try:
            stdout, stderr = await asyncio.wait_for(
                process.communicate(),
                timeout=timeout
            )

            return CompletedProcess(
                returncode=process.returncode,
                stdout=stdout,
                stderr=stderr if capture_stderr else b""
            )

        except asyncio.TimeoutError:
            process.kill()
            await process.wait()
            raise
        except BaseException:
            if process.returncode is None:
                process.kill()
                await process.wait()
            raise


class YTDLPCommandBuilder:
    """Build yt-dlp commands"""

    @staticmethod
    def _common_options() -> List[str]:
        cmd = [
            '--no-playlist',
            '--socket-timeout', str(config.download.socket_timeout),
            '--retries', str(config.download.retries),
        ]

        if not config.ytdlp.enable_live_streams:
            cmd.extend(['--match-filter', '!is_live'])

        return cmd

    @staticmethod
    def build_info_command(url: str) -> List[str]:
        """Build command for fetching video info and its format list"""
        cmd = [config.ytdlp.binary, '--dump-json']
        cmd.extend(YTDLPCommandBuilder._common_options())
        cmd.extend(['--', url])
        return cmd

    @staticmethod
    def build_download_command(
        url: str,
        format_str: str,
        output_template: str
    ) -> List[str]:
        """Build command that downloads to disk and prints the final path"""
        cmd = [
            config.ytdlp.binary,
            '-f', format_str,
            '-o', output_template,
            '--no-progress',
            '--print', FILEPATH_TEMPLATE,
        ]
        cmd.extend(YTDLPCommandBuilder._common_options())
        # Terminate options so a URL can never be read as a flag
        cmd.extend(['--', url])
        return cmd

    @staticmethod
    def build_version_command() -> List[str]:
        return [config.ytdlp.binary, '--version']


async def detect_ytdlp_version(timeout: float = 10.0) -> Optional[str]:
    """Record the installed yt-dlp version in runtime state"""
    try:
        result = await SubprocessExecutor.run(YTDLPCommandBuilder.build_version_command(), timeout=timeout)
    except (OSError, asyncio.TimeoutError) as e:
        logger.warning(f"yt-dlp not available: {str(e)}")
        return None

    if result.returncode != 0:
        return None

    version = result.stdout.decode(errors="ignore").strip()
    state.ytdlp_version = version or "unknown"
    return version
