"""
React / TypeScript lookup tables for the local fixers
"""

from dataclasses import dataclass
from typing import Dict, FrozenSet


@dataclass(frozen=True)
class ImportInfo:
    """Where a well-known identifier is imported from"""
    module: str
    is_default: bool = False
    is_type: bool = False


def _named(module: str, *names: str) -> Dict[str, ImportInfo]:
    return {name: ImportInfo(module) for name in names}


def _types(module: str, *names: str) -> Dict[str, ImportInfo]:
    return {name: ImportInfo(module, is_type=True) for name in names}


# =========================================================================
# Identifier -> import source
# =========================================================================

COMMON_IMPORTS: Dict[str, ImportInfo] = {
    # React
    "React": ImportInfo("react", is_default=True),
    **_named(
        "react",
        "useState", "useEffect", "useCallback", "useMemo", "useRef",
        "useContext", "useReducer", "useLayoutEffect", "useId",
        "createContext", "forwardRef", "memo", "lazy", "Suspense", "Fragment",
    ),

    # React types
    **_types(
        "react",
        "FC", "ReactNode", "ReactElement", "CSSProperties",
        "ChangeEvent", "FormEvent", "MouseEvent", "KeyboardEvent",
    ),

    # Common lucide icons
    **_named(
        "lucide-react",
        "Search", "X", "Check", "ChevronDown", "ChevronUp", "ChevronLeft",
        "ChevronRight", "Menu", "Settings", "User", "Home", "Plus", "Minus",
        "Edit", "Trash", "Trash2", "Download", "Upload", "Eye", "EyeOff",
        "Lock", "Info", "AlertCircle", "AlertTriangle", "Loader2", "RefreshCw",
        "Copy", "ExternalLink", "Send", "Play", "Pause", "Save", "Undo", "Redo",
        "Bot", "Sparkles", "Code", "Terminal",
    ),

    # Motion
    **_named("motion/react", "motion", "AnimatePresence", "useAnimation", "useMotionValue"),

    # Utilities
    "clsx": ImportInfo("clsx", is_default=True),
    "cn": ImportInfo("clsx", is_default=True),
    "axios": ImportInfo("axios", is_default=True),
}


# =========================================================================
# Lower-case DOM attribute -> React prop
# =========================================================================

PROP_TYPOS: Dict[str, str] = {
    "class": "className",
    "classname": "className",
    "for": "htmlFor",
    "htmlfor": "htmlFor",
    "onclick": "onClick",
    "onchange": "onChange",
    "onsubmit": "onSubmit",
    "onfocus": "onFocus",
    "onblur": "onBlur",
    "onkeydown": "onKeyDown",
    "onkeyup": "onKeyUp",
    "onkeypress": "onKeyPress",
    "onmouseenter": "onMouseEnter",
    "onmouseleave": "onMouseLeave",
    "tabindex": "tabIndex",
    "readonly": "readOnly",
    "autocomplete": "autoComplete",
    "autofocus": "autoFocus",
    "srcset": "srcSet",
    "rowspan": "rowSpan",
    "colspan": "colSpan",
    "cellpadding": "cellPadding",
    "cellspacing": "cellSpacing",
    "maxlength": "maxLength",
    "minlength": "minLength",
    "contenteditable": "contentEditable",
    "crossorigin": "crossOrigin",
    "datetime": "dateTime",
    "enctype": "encType",
    "formaction": "formAction",
    "formenctype": "formEncType",
    "formmethod": "formMethod",
    "formnovalidate": "formNoValidate",
    "formtarget": "formTarget",
    "frameborder": "frameBorder",
    "marginheight": "marginHeight",
    "marginwidth": "marginWidth",
    "novalidate": "noValidate",
    "spellcheck": "spellCheck",
    "srcdoc": "srcDoc",
    "usemap": "useMap",
}


# Void HTML elements - must be self-closing in JSX
SELF_CLOSING_TAGS: FrozenSet[str] = frozenset({
    "img", "br", "hr", "input", "meta", "link", "area", "base", "col",
    "embed", "param", "source", "track", "wbr",
})


# =========================================================================
# Library -> {wrong export: correct export}
# =========================================================================

_ROUTER_RENAMES = {
    "Router": "BrowserRouter",
    "Switch": "Routes",
    "Redirect": "Navigate",
    "useHistory": "useNavigate",
}

EXPORT_CORRECTIONS: Dict[str, Dict[str, str]] = {
    "@react-three/drei": {
        "TextView": "Text",
        "Text3d": "Text3D",
        "OrbitControl": "OrbitControls",
        "TransformControl": "TransformControls",
        "Enviroment": "Environment",
        "Enviroments": "Environment",
    },
    "motion/react": {"Motion": "motion"},
    "framer-motion": {"Motion": "motion"},
    "react-router-dom": dict(_ROUTER_RENAMES),
    "react-router": dict(_ROUTER_RENAMES),
}


ICON_LIBRARY = "lucide-react"
LUCIDE_FALLBACK_ICON = "CircleHelp"

# Known-good lucide icons (partial list)
KNOWN_LUCIDE_ICONS: FrozenSet[str] = frozenset({
    "Search", "X", "Check", "ChevronDown", "ChevronUp", "ChevronLeft", "ChevronRight",
    "Menu", "Settings", "User", "Home", "Plus", "Minus", "Edit", "Trash", "Trash2",
    "Download", "Upload", "Eye", "EyeOff", "Lock", "Info", "AlertCircle", "AlertTriangle",
    "Loader2", "RefreshCw", "Copy", "ExternalLink", "Send", "Play", "Pause", "Save",
    "Undo", "Redo", "Bot", "Sparkles", "Code", "Terminal", "Heart", "Star", "Mail",
    "Phone", "Calendar", "Clock", "MapPin", "Image", "File", "Folder", "Link", "Share",
    "Filter", "MoreHorizontal", "MoreVertical", "ArrowUp", "ArrowDown", "ArrowLeft",
    "ArrowRight", "LogIn", "LogOut", "Bell", "Sun", "Moon", "Zap", "Coffee", "Music",
    "Camera", "Video", "Mic", "Volume2", "VolumeX", "Wifi", "Battery", "Power",
    "CircleHelp", "HelpCircle", "CircleAlert", "CircleCheck", "CircleX", "Circle",
    "Square", "Triangle", "Hexagon", "Octagon", "Diamond", "Shield", "Flag",
    "Bookmark", "Tag", "Hash", "AtSign", "Globe", "Languages", "Palette", "Wand2",
    "Wrench", "Hammer", "Scissors", "Pen", "Pencil", "Eraser", "Lightbulb", "Target",
    "Award", "Trophy", "Crown", "Gift", "Package", "ShoppingCart", "ShoppingBag",
    "CreditCard", "Wallet", "DollarSign", "Euro", "Bitcoin", "TrendingUp", "TrendingDown",
    "BarChart", "PieChart", "LineChart", "Activity", "Cpu", "Database", "Server",
    "HardDrive", "Monitor", "Smartphone", "Tablet", "Laptop", "Watch", "Headphones",
    "Speaker", "Printer", "Keyboard", "Mouse", "Gamepad", "Github", "Twitter", "Facebook",
    "Instagram", "Linkedin", "Youtube", "Twitch", "MessageSquare", "MessageCircle",
    "Megaphone", "Rss", "Radio", "Podcast", "Tv", "Film", "Clapperboard", "Popcorn",
    "Car", "Bus", "Train", "Plane", "Rocket", "Ship", "Bike", "Footprints",
})
