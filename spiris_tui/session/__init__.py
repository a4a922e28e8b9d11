"""Interactive session state machine."""

from spiris_tui.session.controller import SessionController
from spiris_tui.session.credentials import CredentialStore
from spiris_tui.session.forms import (
    FORM_FIELDS,
    FormCollector,
    FormPhase,
    FormValidationError,
    build_payload,
    required_field_count,
)
from spiris_tui.session.models import (
    CollectionState,
    FormBuffer,
    InputMode,
    NavigationState,
    Screen,
    ScreenType,
    SessionState,
)
from spiris_tui.session.navigation import (
    HOME_MENU,
    PRIMARY_SCREENS,
    Direction,
    NavigationController,
)
from spiris_tui.session.sync import PAGE_SIZE, DataSynchronizer, SyncResult

__all__ = [
    'FORM_FIELDS',
    'HOME_MENU',
    'PAGE_SIZE',
    'PRIMARY_SCREENS',
    'CollectionState',
    'CredentialStore',
    'DataSynchronizer',
    'Direction',
    'FormBuffer',
    'FormCollector',
    'FormPhase',
    'FormValidationError',
    'InputMode',
    'NavigationController',
    'NavigationState',
    'Screen',
    'ScreenType',
    'SessionController',
    'SessionState',
    'SyncResult',
    'build_payload',
    'required_field_count',
]
