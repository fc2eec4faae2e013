import json
from pathlib import Path
import logging

from app.core.config import settings

logger = logging.getLogger(__name__)


class Translator:
    def __init__(self, default_lang=None):
        self.default_lang = default_lang or settings.DEFAULT_LANGUAGE
        self.supported_langs = ["en", "zh-TW"]
        self.translations = self.load_translations()

    def load_translations(self):
        translations = {}
        base_path = Path(__file__).resolve().parent.parent / "locals"

        for lang in self.supported_langs:
            file = base_path / f"{lang}.json"
            try:
                with open(file, "r", encoding="utf-8") as f:
                    content = f.read().strip()
                    if not content:
                        logger.warning("Translation file '%s' is empty.", file)
                        continue
                    translations[lang] = json.loads(content)
            except (OSError, json.JSONDecodeError) as e:
                logger.warning("Failed to load translation file '%s': %s", file, e)

        return translations

    def resolve_lang(self, lang: str = None) -> str:
        if not lang:
            return self.default_lang
        if lang in self.supported_langs:
            return lang
        # Accept-Language may carry a list such as "zh-TW,zh;q=0.9"
        primary = lang.split(",")[0].split(";")[0].strip()
        return primary if primary in self.supported_langs else self.default_lang

    def t(self, key: str, lang: str = None) -> str:
        lang = self.resolve_lang(lang)
        return (
                self.translations.get(lang, {}).get(key)
                or self.translations.get(self.default_lang, {}).get(key)
                or key
        )
