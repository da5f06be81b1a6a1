"""
Halyard Application - module registry and controller router.

The application is the default ``ModuleResolver`` and ``Router`` of the
dispatch contexts it creates. Routes have the form
``[module/]controller[/action]``:

    app = Application(
        modules=[Module("blog", {"post": PostController})],
        controllers={"site": SiteController},
    )
    output = await app.handle("blog/post/view", request=request, params={"id": 3})
"""

from typing import Any, Dict, Iterable, Mapping, Optional, Tuple
import inspect
import logging

from .config import ConfigLoader, HalyardConfig
from .context import BufferSink, DispatchContext
from .controller.base import Controller
from .controller.factory import ObjectFactory
from .faults import ActionConfigFault, NotFoundFault
from .module import Module
from .signals import SignalBus

logger = logging.getLogger("halyard.application")

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging for applications built on halyard."""
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format=LOG_FORMAT,
    )


class Application:
    """
    Registry of modules and top-level controllers.

    Args:
        config: Typed settings shared by every context
        modules: Modules to register
        controllers: Top-level controllers (``id -> class | dotted path``)
        signals: Hook dispatcher shared by every dispatch
        translator: Translator for framework messages
        middleware: View middleware run on top-level output
        sink: Default sink for ``handle``
    """

    def __init__(
        self,
        config: Optional[HalyardConfig] = None,
        *,
        modules: Optional[Iterable[Module]] = None,
        controllers: Optional[Dict[str, Any]] = None,
        signals: Optional[SignalBus] = None,
        translator: Optional[Any] = None,
        middleware: Optional[Any] = None,
        sink: Optional[Any] = None,
    ):
        self.config = config or HalyardConfig()
        self.signals = signals or SignalBus()
        self.translator = translator
        self.middleware = middleware
        self.sink = sink
        self.modules: Dict[str, Module] = {}
        self.controllers: Dict[str, Any] = dict(controllers or {})

        for module in modules or []:
            self.register_module(module)

    @classmethod
    def from_loader(cls, loader: ConfigLoader, **kwargs) -> "Application":
        """Build an application from a loaded configuration."""
        return cls(loader.halyard_config(), **kwargs)

    def setup_logging(self) -> None:
        configure_logging(self.config.log_level)

    # ------------------------------------------------------------------
    # Registry
    # ------------------------------------------------------------------

    def register_module(self, module: Module) -> Module:
        if module.id in self.modules:
            logger.warning(f"Module '{module.id}' registered twice; replacing")
        self.modules[module.id] = module
        logger.debug(f"Registered module '{module.id}'")
        return module

    def get_module(self, name: str) -> Optional[Module]:
        return self.modules.get(name)

    def create_context(self, request: Any = None, sink: Any = None, **changes: Any) -> DispatchContext:
        """Fresh per-request context wired to this application."""
        return DispatchContext(
            signals=self.signals,
            request=request,
            sink=sink if sink is not None else self.sink,
            middleware=self.middleware,
            modules=self,
            router=self,
            translator=self.translator,
            config=self.config,
            **changes,
        )

    # ------------------------------------------------------------------
    # Routing
    # ------------------------------------------------------------------

    def create_controller(self, route: str, context: DispatchContext) -> Optional[Tuple[Controller, str]]:
        """
        Resolve ``route`` to a controller and the action id it names.

        Returns:
            ``(controller, action_id)``, or None if the route does not resolve
        """
        segments = [s for s in route.strip("/").split("/") if s]
        if not segments:
            return None

        head, rest = segments[0], segments[1:]
        module = self.modules.get(head)
        if module is not None and rest:
            controller_id, rest = rest[0], rest[1:]
            controller = module.create_controller(controller_id, context)
        else:
            controller_id = head
            controller = self._create_top_level(controller_id, context)

        if controller is None or len(rest) > 1:
            return None

        controller.init()
        return controller, rest[0] if rest else ""

    def _create_top_level(self, controller_id: str, context: DispatchContext) -> Optional[Controller]:
        ref = self.controllers.get(controller_id)
        if ref is None:
            return None
        klass = ObjectFactory.resolve_class(ref)
        if not (inspect.isclass(klass) and issubclass(klass, Controller)):
            raise ActionConfigFault(
                f"'{controller_id}' is not a Controller subclass.",
                reason="bad_controller",
            )
        return klass(controller_id, None, context)

    async def run_controller(
        self,
        route: str,
        params: Optional[Mapping[str, Any]] = None,
        *,
        context: Optional[DispatchContext] = None,
    ) -> Any:
        """
        Dispatch ``route`` and return its output.

        Raises:
            NotFoundFault: If the route does not resolve to a controller
        """
        if context is None:
            context = self.create_context()

        resolved = self.create_controller(route, context)
        if resolved is None:
            logger.warning(f"Unable to resolve route '{route}'")
            raise NotFoundFault(
                context.t(
                    self.config.translation_category,
                    'Unable to resolve the request "{route}".',
                    {"{route}": route},
                ),
                action=route,
            )

        controller, action_id = resolved
        logger.debug(f"Route '{route}' -> {controller.unique_id}/{action_id or controller.default_action}")
        return await controller.run(action_id, params)

    async def handle(
        self,
        route: str,
        request: Any = None,
        params: Optional[Mapping[str, Any]] = None,
        sink: Any = None,
    ) -> Any:
        """Serve one request: new context, dispatch, return the output."""
        if sink is None and self.sink is None:
            sink = BufferSink()
        context = self.create_context(request=request, sink=sink)
        return await self.run_controller(route, params, context=context)

    def __repr__(self) -> str:
        return f"<Application modules={sorted(self.modules)} controllers={sorted(self.controllers)}>"
