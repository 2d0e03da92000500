"""
semantic_engine/llm/ollama_adapter.py
Ollama backend for narrative synthesis. Ollama runs locally; any model
pulled via `ollama pull <model>` works.

INSTALL:
  https://ollama.com/download

RECOMMENDED MODELS (by RAM):
  <4GB RAM:  phi3:mini, qwen2:1.5b
  4-8GB RAM: mistral:7b, llama3:8b
  8GB+ RAM:  llama3:8b-instruct
"""

import json
import logging
import urllib.error
import urllib.request
from typing import Any, Dict, List, Optional

from semantic_engine.llm.base import NarrativeAdapter, NarrativeResponse

logger = logging.getLogger(__name__)

MAX_INSIGHTS = 8


class OllamaNarrativeAdapter(NarrativeAdapter):

    def __init__(
        self,
        model:       str   = 'llama3:8b-instruct',
        host:        str   = 'http://localhost:11434',
        timeout_sec: int   = 120,
        temperature: float = 0.3,
    ):
        self.model       = model
        self.host        = host.rstrip('/')
        self.timeout_sec = timeout_sec
        self.temperature = temperature

    # ── AVAILABILITY CHECK ───────────────────────────────────
    def is_available(self) -> bool:
        """Ping Ollama and confirm the configured model is pulled."""
        try:
            models = self._fetch_models()
        except urllib.error.URLError:
            logger.warning(f"Ollama not reachable at {self.host}. Start Ollama or check if it's running.")
            return False
        except Exception as e:
            logger.warning(f"Ollama availability check failed: {e}")
            return False

        # "llama3" matches "llama3:8b-instruct"
        available = any(
            m == self.model or m.startswith(self.model.split(':')[0])
            for m in models
        )
        if not available:
            logger.warning(
                f"Model '{self.model}' not found in Ollama. "
                f"Available: {models}. Run: ollama pull {self.model}"
            )
        return available

    def _fetch_models(self) -> List[str]:
        req = urllib.request.Request(f"{self.host}/api/tags", method='GET')
        with urllib.request.urlopen(req, timeout=5) as resp:
            data = json.loads(resp.read().decode())
        return [m['name'] for m in data.get('models', [])]

    # ── GENERATION ───────────────────────────────────────────
    def generate(self, summary: Dict[str, Any]) -> Optional[NarrativeResponse]:
        payload = json.dumps({
            'model':   self.model,
            'prompt':  self.build_prompt(summary),
            'stream':  False,
            'options': {
                'temperature': self.temperature,
                'num_predict': 600,
            },
            'format':  'json',   # forces valid JSON output
        }).encode('utf-8')

        try:
            req = urllib.request.Request(
                f"{self.host}/api/generate",
                data    = payload,
                headers = {'Content-Type': 'application/json'},
                method  = 'POST',
            )
            with urllib.request.urlopen(req, timeout=self.timeout_sec) as resp:
                data = json.loads(resp.read().decode('utf-8'))
            return self._parse_response(data.get('response', '').strip())

        except urllib.error.URLError as e:
            logger.error(f"Ollama request failed: {e}")
            return None
        except json.JSONDecodeError as e:
            logger.error(f"JSON decode failed in Ollama response: {e}")
            return None
        except Exception as e:
            logger.error(f"Ollama narrative error: {e}")
            return None

    # ── RESPONSE PARSER ──────────────────────────────────────
    def _parse_response(self, text: str) -> Optional[NarrativeResponse]:
        """Handles models that add markdown fences despite format=json."""
        try:
            clean = text.strip()
            if clean.startswith('```'):
                clean = clean.split('```')[1]
                if clean.startswith('json'):
                    clean = clean[4:]
            data = json.loads(clean.strip())

            summary = str(data.get('summary', '')).strip()
            if not summary:
                logger.warning("Ollama response had no summary")
                return None
            insights = [str(i).strip() for i in data.get('insights', []) if str(i).strip()]
            return NarrativeResponse(
                summary      = summary[:3000],
                insights     = insights[:MAX_INSIGHTS],
                model_used   = self.model,
                raw_response = text[:500],
            )
        except (json.JSONDecodeError, AttributeError, TypeError) as e:
            logger.warning(f"Could not parse Ollama response: {e}\nRaw: {text[:200]}")
            return None

    def list_available_models(self) -> List[str]:
        """Locally available Ollama model names; empty when unreachable."""
        try:
            return self._fetch_models()
        except (urllib.error.URLError, OSError, ValueError) as e:
            logger.debug(f"Could not list Ollama models: {e}")
            return []
