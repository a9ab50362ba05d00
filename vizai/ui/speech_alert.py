"""
Single-voice text-to-speech output for proximity alerts
"""

import concurrent.futures
import logging
import platform
import subprocess
import threading

from .. import config

logger = logging.getLogger(__name__)

class SpeechChannel:
    """
    One voice, one utterance at a time.

    speak() hands the text over and returns immediately; the channel reports
    the end of every utterance to its listener with
    listener.on_utterance_finished(utterance_id, completed).
    """

    def __init__(self):
        self.listener = None

    def set_listener(self, listener):
        self.listener = listener

    def speak(self, text, utterance_id):
        raise NotImplementedError

    def cancel(self):
        raise NotImplementedError

    def shutdown(self):
        pass

    def _notify(self, utterance_id, completed):
        if self.listener is not None:
            self.listener.on_utterance_finished(utterance_id, completed)

class LogSpeechChannel(SpeechChannel):
    """Writes messages to the log instead of speaking them (speech disabled)."""

    def speak(self, text, utterance_id):
        logger.info(f"[speech] {text}")
        self._notify(utterance_id, True)

    def cancel(self):
        pass

class SystemSpeechChannel(SpeechChannel):
    """
    Speaks through the platform speech command (PowerShell on Windows, say on
    macOS, espeak on Linux) on a single worker thread.
    """

    def __init__(self, rate=None, use_female_voice=None, language=None):
        """
        Args:
            rate: Speech rate (-10 to 10), or None to use config
            use_female_voice: Prefer a female voice on Windows, or None to use config
            language: Message language, selects the espeak voice
        """
        super().__init__()
        self.rate = rate if rate is not None else config.SPEECH_RATE
        self.use_female_voice = use_female_voice if use_female_voice is not None else config.SPEECH_USE_FEMALE_VOICE
        self.language = language or config.ALERT_LANGUAGE
        self.system = platform.system()

        self.executor = concurrent.futures.ThreadPoolExecutor(max_workers=1, thread_name_prefix="speech")
        self._process_lock = threading.Lock()
        self._process = None
        self._cancelled = set()
        self._generation = 0  # Bumped by cancel(), drops utterances still waiting for the worker

        logger.info(f"Speech channel initialized ({self.system})")

    def speak(self, text, utterance_id):
        with self._process_lock:
            generation = self._generation
        self.executor.submit(self._do_speak, text, utterance_id, generation)

    def cancel(self):
        """Stop the utterance currently playing, if any."""
        with self._process_lock:
            self._generation += 1
            process = self._process
            if process is not None and process.poll() is None:
                self._cancelled.add(process.pid)
                process.terminate()

    def shutdown(self):
        self.cancel()
        self.executor.shutdown(wait=False)
        logger.info("Speech channel shut down")

    def build_command(self, text):
        """Command line speaking text on this platform."""
        if self.system == "Windows":
            voice_hint = '$speak.SelectVoiceByHints("Female"); ' if self.use_female_voice else ""
            escaped = text.replace('"', "'")
            return ["powershell", "-command",
                    "Add-Type -AssemblyName System.Speech; "
                    "$speak = New-Object System.Speech.Synthesis.SpeechSynthesizer; "
                    f"$speak.Rate = {self.rate}; $speak.Volume = 100; {voice_hint}"
                    f'$speak.Speak("{escaped}")']
        if self.system == "Darwin":
            return ["say", "-r", str(180 + 10 * self.rate), text]
        return ["espeak", "-v", self.language, "-s", str(150 + 5 * self.rate), "-a", "150", text]

    def _do_speak(self, text, utterance_id, generation=None):
        completed = False
        try:
            with self._process_lock:
                if generation is not None and generation != self._generation:
                    return
                self._process = subprocess.Popen(self.build_command(text),
                                                 stdout=subprocess.DEVNULL,
                                                 stderr=subprocess.DEVNULL)
                process = self._process
            returncode = process.wait()
            with self._process_lock:
                cancelled = process.pid in self._cancelled
                self._cancelled.discard(process.pid)
                self._process = None
            completed = returncode == 0 and not cancelled
            if returncode != 0 and not cancelled:
                logger.warning(f"Speech command exited with code {returncode}")
        except FileNotFoundError:
            logger.warning("Speech command not found, alert not spoken")
        except OSError as e:
            logger.error(f"Error using text-to-speech: {e}")
        finally:
            self._notify(utterance_id, completed)
