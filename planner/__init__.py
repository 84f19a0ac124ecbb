from .utils import *
from .models import (Element, ElementKind, PositionStatus, Layout, LeasingDetails, PositionRecord,
                     DetectedPosition, FloorplanAnalysis, Mode)
from .state import layout_to_dict, layout_from_dict, layouts_from_json, layouts_to_json
from .undo import UndoManager
from .store import LayoutStore
from .gestures import InteractionController, GestureState
from .factory import ItemFactory
from .persistence import (PersistenceError, LayoutRepository, JsonLayoutRepository, SupabaseLayoutRepository,
                          PositionRepository, InMemoryPositionRepository, SupabasePositionRepository)
from .bridge import ReconciliationBridge
from .analysis import AnalysisClient, AnalysisError, parse_analysis
from .session import EditorSession
from .svg import render_svg, export_svg
from .config import EditorConfig, load_config

__all__ = [
    "Element", "ElementKind", "PositionStatus", "Layout", "LeasingDetails", "PositionRecord",
    "DetectedPosition", "FloorplanAnalysis", "Mode",
    "LayoutStore", "UndoManager", "InteractionController", "GestureState", "ItemFactory",
    "PersistenceError", "LayoutRepository", "JsonLayoutRepository", "SupabaseLayoutRepository",
    "PositionRepository", "InMemoryPositionRepository", "SupabasePositionRepository",
    "ReconciliationBridge", "AnalysisClient", "AnalysisError", "parse_analysis",
    "EditorSession", "render_svg", "export_svg", "EditorConfig", "load_config",
]
