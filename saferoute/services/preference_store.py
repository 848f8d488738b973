"""
saferoute/services/preference_store.py

ユーザー嗜好（safe / fast / comfy）の永続化

JSONファイルに単一の値を保存する。ファイルが存在しない・読めない・
値が不正な場合は safe として扱う。
"""
import json
from pathlib import Path
from typing import Union

from saferoute.models.route import RoutePreference


DEFAULT_PREFERENCE = RoutePreference.SAFE


class PreferenceStore:
    """
    嗜好フラグのJSONストア

    ファイル形式:
        {"preference": "safe"}

    使用例:
        store = PreferenceStore(".saferoute/preference.json")
        store.save(RoutePreference.COMFY)
        store.load()  # RoutePreference.COMFY
    """

    def __init__(self, path: Union[str, Path]):
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> RoutePreference:
        """保存済みの嗜好を読み込む（なければ safe）"""
        try:
            with open(self._path, "r", encoding="utf-8") as f:
                data = json.load(f)
            return RoutePreference(data["preference"])
        except FileNotFoundError:
            return DEFAULT_PREFERENCE
        except (OSError, ValueError, KeyError, TypeError) as e:
            print(f"PreferenceStore: Could not read {self._path} ({e}), using default")
            return DEFAULT_PREFERENCE

    def save(self, preference: RoutePreference) -> RoutePreference:
        """嗜好を保存する（ユーザーが明示的に変更した時のみ呼ぶ）"""
        self._path.parent.mkdir(parents=True, exist_ok=True)
        with open(self._path, "w", encoding="utf-8") as f:
            json.dump({"preference": preference.value}, f)
        print(f"PreferenceStore: Saved preference '{preference.value}'")
        return preference
