# aichat/memory.py
from __future__ import annotations

import glob
import json
import logging
import os
import re
from typing import Dict, List, Optional


def safe_name(user_name: str) -> str:
    """Espacios -> '_' y fuera todo lo que no sea palabra o guion."""
    name = re.sub(r"\s+", "_", user_name or "")
    return re.sub(r"[^\w\-]", "", name)


class ConversationMemory:
    """
    Historial de conversación por usuario: un JSON por usuario en `folder`,
    llamado <user_id>_<nombre_seguro>.json. Cada entrada guarda
    {userId, userName, user, ai}.
    """

    def __init__(self, folder: str, *, log: Optional[logging.Logger] = None):
        self.folder = folder
        self.log = log or logging.getLogger("tezca.ai.memory")
        os.makedirs(self.folder, exist_ok=True)

    def path_for(self, user_id, user_name: str) -> str:
        return os.path.join(self.folder, f"{user_id}_{safe_name(user_name)}.json")

    def load(self, user_id, user_name: str) -> List[Dict[str, str]]:
        path = self.path_for(user_id, user_name)
        if not os.path.exists(path):
            return []
        try:
            with open(path, "r", encoding="utf-8") as fh:
                data = json.load(fh)
        except (OSError, ValueError) as e:
            self.log.error("Error reading memory file (User: %s, Name: %s): %s", user_id, user_name, e)
            return []
        if not isinstance(data, list):
            self.log.error("Memory file for %s is not a list, ignoring it", user_id)
            return []
        return data

    def save(self, user_id, user_name: str, history: List[Dict[str, str]]):
        path = self.path_for(user_id, user_name)
        try:
            with open(path, "w", encoding="utf-8") as fh:
                json.dump(history, fh, ensure_ascii=False, indent=2)
        except OSError as e:
            self.log.error("Error saving memory file (User: %s, Name: %s): %s", user_id, user_name, e)

    def append(self, user_id, user_name: str, question: str, answer: str) -> List[Dict[str, str]]:
        history = self.load(user_id, user_name)
        history.append({"userId": str(user_id), "userName": user_name, "user": question, "ai": answer})
        self.save(user_id, user_name, history)
        return history

    def clear(self, user_id) -> int:
        """Borra todos los archivos del usuario (aunque haya cambiado de nombre)."""
        removed = 0
        for path in glob.glob(os.path.join(self.folder, f"{user_id}_*.json")):
            try:
                os.remove(path)
                removed += 1
            except OSError as e:
                self.log.error("Could not delete memory file %s: %s", path, e)
        return removed
