"""Session state models."""

from dataclasses import dataclass, field
from enum import Enum

from spiris_tui.api import Entity, EntityKind
from spiris_tui.auth import AuthorizationHandle
from spiris_tui.db.models import Credential


class ScreenType(Enum):
    """Screens the session can show."""

    HOME = "home"
    AUTH = "auth"
    ENTITY_LIST = "list"
    ENTITY_CREATE = "create"
    ENTITY_EDIT = "edit"
    ENTITY_DETAIL = "detail"
    HELP = "help"


@dataclass(frozen=True)
class Screen:
    """A screen, plus the entity kind and identifier it refers to.

    Detail and edit screens carry the entity's identifier rather than its
    position in a list, so they stay valid when the list is reloaded.
    """

    type: ScreenType
    kind: EntityKind | None = None
    entity_id: str | None = None

    @classmethod
    def home(cls) -> "Screen":
        return cls(ScreenType.HOME)

    @classmethod
    def auth(cls) -> "Screen":
        return cls(ScreenType.AUTH)

    @classmethod
    def help(cls) -> "Screen":
        return cls(ScreenType.HELP)

    @classmethod
    def entity_list(cls, kind: EntityKind) -> "Screen":
        return cls(ScreenType.ENTITY_LIST, kind)

    @classmethod
    def create(cls, kind: EntityKind) -> "Screen":
        return cls(ScreenType.ENTITY_CREATE, kind)

    @classmethod
    def edit(cls, kind: EntityKind, entity_id: str) -> "Screen":
        return cls(ScreenType.ENTITY_EDIT, kind, entity_id)

    @classmethod
    def detail(cls, kind: EntityKind, entity_id: str) -> "Screen":
        return cls(ScreenType.ENTITY_DETAIL, kind, entity_id)

    @property
    def is_list(self) -> bool:
        return self.type is ScreenType.ENTITY_LIST

    @property
    def is_form(self) -> bool:
        return self.type in (ScreenType.ENTITY_CREATE, ScreenType.ENTITY_EDIT)


class InputMode(Enum):
    """Whether keys navigate or type into a form."""

    NORMAL = "normal"
    EDITING = "editing"


@dataclass
class NavigationState:
    """Current screen, the one screen to return to, and the input mode."""

    current: Screen
    return_to: Screen | None = None
    mode: InputMode = InputMode.NORMAL
    menu_index: int = 0


@dataclass
class FormBuffer:
    """Field values collected so far for one create or edit form."""

    kind: EntityKind
    entity_id: str | None = None
    collected: list[str] = field(default_factory=list)
    live: str = ""

    @property
    def cursor(self) -> int:
        """Index of the field currently being typed."""
        return len(self.collected)


@dataclass
class CollectionState:
    """Cached page of one entity kind, with selection and sync status."""

    items: list[Entity] = field(default_factory=list)
    selected: int = 0
    loading: bool = False
    last_error: str | None = None
    loaded: bool = False

    @property
    def selected_item(self) -> Entity | None:
        if not self.items:
            return None
        return self.items[self.selected]

    def find(self, entity_id: str) -> Entity | None:
        """Look up a cached item by identifier."""
        return next((item for item in self.items if item.id == entity_id), None)

    def replace_items(self, items: list[Entity]) -> None:
        """Install freshly loaded items, keeping the selection in range."""
        self.items = list(items)
        if not self.items:
            self.selected = 0
        elif self.selected >= len(self.items):
            self.selected = len(self.items) - 1
        self.loaded = True


class EffectAction(Enum):
    """Side effects a navigation step asks the session to perform."""

    LOAD = "load"
    START_FORM = "start_form"
    AUTHORIZE = "authorize"


@dataclass(frozen=True)
class Effect:
    action: EffectAction
    kind: EntityKind | None = None
    entity_id: str | None = None


@dataclass
class SessionState:
    """Everything the session screen renders."""

    navigation: NavigationState
    collections: dict[EntityKind, CollectionState] = field(default_factory=dict)
    form: FormBuffer | None = None
    credential: Credential | None = None
    authorization: AuthorizationHandle | None = None
    status_message: str | None = None
    error_message: str | None = None
    should_quit: bool = False

    @classmethod
    def initial(cls, credential: Credential | None) -> "SessionState":
        """Start on Home when a credential is available, otherwise on Auth."""
        screen = Screen.home() if credential is not None else Screen.auth()
        return cls(navigation=NavigationState(current=screen), credential=credential)

    @property
    def screen(self) -> Screen:
        return self.navigation.current

    @property
    def mode(self) -> InputMode:
        return self.navigation.mode

    @property
    def is_authenticated(self) -> bool:
        return self.credential is not None

    def collection(self, kind: EntityKind) -> CollectionState:
        """Get the collection for a kind, materializing it on first use."""
        if kind not in self.collections:
            self.collections[kind] = CollectionState()
        return self.collections[kind]

    def set_status(self, message: str) -> None:
        self.status_message = message

    def set_error(self, message: str) -> None:
        self.error_message = message
