"""In-memory index of launchable apps with fuzzy search."""

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Tuple

from .config import SEARCH_THRESHOLD
from .fuzzy_matcher import fuzzy_score

DEFAULT_ORDER = 999

# Weights applied to non-name fields so name hits rank first
DESCRIPTION_WEIGHT = 1.5
CATEGORY_WEIGHT = 1.2


@dataclass(frozen=True)
class AppDescriptor:
    """Data model for one app loaded from its manifest."""
    id: str
    name: str
    description: str = ""
    categories: Tuple[str, ...] = ()
    folder: str = ""
    order: int = DEFAULT_ORDER
    storage_keys: Tuple[str, ...] = ()
    entry: str = "index.html"
    icon: str = "icon.svg"
    short_name: Optional[str] = None
    pinned: bool = False
    
    @classmethod
    def from_manifest(
        cls,
        manifest: Dict[str, Any],
        folder: str = "",
        order: Optional[int] = None,
        pinned: bool = False,
    ) -> 'AppDescriptor':
        """
        Build a descriptor from a per-app manifest document.
        
        Args:
            manifest: Parsed manifest.json
            folder: App folder under apps/
            order: Registry order (falls back to the manifest's order, then 999)
            pinned: Whether the registry pins this app
            
        Returns:
            AppDescriptor
        """
        if order is None:
            order = manifest.get("order") or DEFAULT_ORDER
        return cls(
            id=str(manifest["id"]),
            name=str(manifest.get("name") or manifest["id"]),
            description=str(manifest.get("description") or ""),
            categories=tuple(str(c) for c in (manifest.get("categories") or [])),
            folder=folder or str(manifest.get("folder") or ""),
            order=int(order),
            storage_keys=tuple(str(k) for k in (manifest.get("storageKeys") or [])),
            entry=str(manifest.get("entry") or "index.html"),
            icon=str(manifest.get("icon") or "icon.svg"),
            short_name=manifest.get("shortName"),
            pinned=bool(pinned),
        )
    
    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for UI consumption."""
        return {
            "id": self.id,
            "name": self.name,
            "shortName": self.short_name or self.name,
            "description": self.description,
            "categories": list(self.categories),
            "folder": self.folder,
            "order": self.order,
            "pinned": self.pinned,
            "storageKeys": list(self.storage_keys),
            "entry": self.entry,
            "icon": self.icon,
        }


class AppIndex:
    """Immutable collection of app descriptors with ranked fuzzy search."""
    
    def __init__(
        self,
        apps: Iterable[AppDescriptor] = (),
        threshold: float = SEARCH_THRESHOLD,
        apps_base: str = "./apps",
    ):
        """
        Initialize the index.
        
        Args:
            apps: Descriptors in registry order
            threshold: Apps whose best score exceeds this are excluded from results
            apps_base: Base path apps are served from
        """
        self._apps: Tuple[AppDescriptor, ...] = tuple(apps)
        self._by_id: Dict[str, AppDescriptor] = {app.id: app for app in self._apps}
        self.threshold = threshold
        self.apps_base = apps_base.rstrip("/")
    
    @property
    def apps(self) -> List[AppDescriptor]:
        """All descriptors in registry order."""
        return list(self._apps)
    
    def __len__(self) -> int:
        return len(self._apps)
    
    def __iter__(self):
        return iter(self._apps)
    
    def score_app(self, query: str, app: AppDescriptor) -> float:
        """
        Compute the effective fuzzy score of an app (lower is better).
        
        Args:
            query: Search query
            app: Candidate app
            
        Returns:
            min(name, description * 1.5, best category * 1.2)
        """
        name_score = fuzzy_score(query, app.name)
        desc_score = fuzzy_score(query, app.description) * DESCRIPTION_WEIGHT
        if app.categories:
            category_score = min(fuzzy_score(query, c) for c in app.categories) * CATEGORY_WEIGHT
        else:
            category_score = float("inf")
        return min(name_score, desc_score, category_score)
    
    def search_scored(self, query: str) -> List[Tuple[float, AppDescriptor]]:
        """
        Search apps and keep their scores.
        
        Returns:
            (score, app) pairs within the threshold, best first; ties keep
            registry order
        """
        normalized = (query or "").strip().lower()
        if not normalized:
            return [(0.0, app) for app in self._apps]
        
        scored = []
        for app in self._apps:
            app_score = self.score_app(normalized, app)
            if app_score <= self.threshold:
                scored.append((app_score, app))
        
        scored.sort(key=lambda item: (item[0], item[1].order))
        return scored
    
    def search(self, query: str) -> List[AppDescriptor]:
        """
        Search apps by name, description and category using fuzzy matching.
        
        An empty or whitespace-only query returns every app in registry order.
        
        Args:
            query: Free-text query
            
        Returns:
            Matching apps, best match first
        """
        return [app for _, app in self.search_scored(query)]
    
    def get_by_id(self, app_id: str) -> Optional[AppDescriptor]:
        """Get an app by id, or None."""
        return self._by_id.get(app_id)
    
    def get_by_category(self, category: str) -> List[AppDescriptor]:
        """
        Get apps in a category (case-insensitive); "all" returns every app.
        """
        if category == "all":
            return list(self._apps)
        
        wanted = category.lower()
        return [
            app for app in self._apps
            if any(c.lower() == wanted for c in app.categories)
        ]
    
    def all_categories(self) -> List[str]:
        """Get every unique category, sorted."""
        categories = set()
        for app in self._apps:
            categories.update(app.categories)
        return sorted(categories)
    
    def storage_keys(self) -> List[str]:
        """Get every storage key declared by any app, in registry order."""
        keys: List[str] = []
        for app in self._apps:
            for key in app.storage_keys:
                if key not in keys:
                    keys.append(key)
        return keys
    
    def entry_url(self, app: AppDescriptor) -> str:
        """Get the full entry URL for an app."""
        return f"{self.apps_base}/{app.folder}/{app.entry}"
    
    def icon_url(self, app: AppDescriptor) -> str:
        """Get the icon URL for an app."""
        return f"{self.apps_base}/{app.folder}/{app.icon}"


def sort_apps(
    apps: Iterable[AppDescriptor],
    mode: str = "recent",
    last_opened: Optional[Dict[str, float]] = None,
) -> List[AppDescriptor]:
    """
    Sort apps for display.
    
    Args:
        apps: Apps to sort
        mode: "alpha", "category" or "recent"
        last_opened: Mapping of app id to last-opened timestamp (for "recent")
        
    Returns:
        New sorted list
    """
    result = list(apps)
    
    if mode == "alpha":
        result.sort(key=lambda app: app.name.lower())
    elif mode == "category":
        # Apps without a category sort last
        result.sort(key=lambda app: app.categories[0].lower() if app.categories else "zzz")
    else:
        last_opened = last_opened or {}
        result.sort(key=lambda app: (-last_opened.get(app.id, 0), app.order))
    
    return result
