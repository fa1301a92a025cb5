"""Theme manager: switching, persistence and broadcast to embedded apps."""

import threading
from typing import Any, Callable, List, Optional

from .config import DEFAULT_THEME, SUPPORTED_THEMES
from .storage import THEME_KEY, ScopedStorage
from .worker.messages import MessagePort, theme_change_message

# Browser UI color for each theme
THEME_COLORS = {
    "dark": "#0a0a0f",
    "light": "#e8e8ed",
    "futuristic": "#050510",
    "amalfi": "#f5ebe0",
}


class ThemeManager:
    """Applies the active theme and notifies every embedded app context."""
    
    def __init__(
        self,
        storage: ScopedStorage,
        default: str = DEFAULT_THEME,
        os_preference: Optional[Callable[[], Optional[str]]] = None,
    ):
        """
        Initialize the theme manager.
        
        Args:
            storage: Storage scoped to the theme key
            default: Theme used when nothing else applies
            os_preference: Returns the OS color scheme ("light"/"dark") or None
        """
        self.storage = storage
        self.default = default
        self.os_preference = os_preference or (lambda: None)
        self.current: Optional[str] = None
        self._contexts: List[Any] = []
        self._lock = threading.Lock()
    
    def init(self) -> 'ThemeManager':
        """Apply the saved theme, else the OS preference, else the default."""
        saved = self.storage.get_item(THEME_KEY)
        self.apply(saved or self.os_preference() or self.default)
        return self
    
    def apply(self, theme: str) -> str:
        """
        Apply and persist a theme; unknown themes fall back to the default.
        
        Returns:
            The theme actually applied
        """
        if theme not in SUPPORTED_THEMES:
            theme = self.default
        
        self.storage.set_item(THEME_KEY, theme)
        self.current = theme
        self._broadcast()
        return theme
    
    def toggle(self) -> str:
        """Switch between dark and light."""
        return self.apply("light" if self.is_dark() else "dark")
    
    def reset(self) -> str:
        """Forget the saved choice and re-apply the OS preference."""
        self.storage.remove_item(THEME_KEY)
        return self.apply(self.os_preference() or self.default)
    
    def get_theme(self) -> Optional[str]:
        return self.current
    
    def is_dark(self) -> bool:
        return self.current == "dark"
    
    def theme_color(self) -> str:
        return THEME_COLORS.get(self.current or "", THEME_COLORS["dark"])
    
    # =============== Embedded app contexts ===============
    def attach(self, context: Any) -> None:
        """
        Attach an embedded app context and send it the current theme.
        
        Args:
            context: A MessagePort or a callable taking the message dict
        """
        with self._lock:
            self._contexts.append(context)
        if self.current is not None:
            self._send(context, theme_change_message(self.current))
    
    def detach(self, context: Any) -> None:
        with self._lock:
            if context in self._contexts:
                self._contexts.remove(context)
    
    def _broadcast(self) -> None:
        message = theme_change_message(self.current)
        with self._lock:
            contexts = list(self._contexts)
        for context in contexts:
            self._send(context, message)
    
    @staticmethod
    def _send(context: Any, message: dict) -> None:
        try:
            if isinstance(context, MessagePort):
                context.post_message(message)
            else:
                context(message)
        except Exception as e:
            # A failing context is skipped
            print(f"Warning: Failed to send theme to app context: {e}")
