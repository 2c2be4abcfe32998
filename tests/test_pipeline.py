"""End-to-end decision pipeline: findings, ordering, isolation and cancellation."""
import pytest

from src.analyzer.cancellation import CancellationToken
from src.analyzer.hook_matcher import HookMatcher
from src.analyzer.hook_registry import HookOrigin, HookRegistries
from src.analyzer.pipeline import DecisionPipeline, FindingVariant, analyze_declarations


PLUGIN_SOURCE = '''
class Base:
    def OnTick(self):
        pass

class Plugin(Base):
    def OnTick(self):
        pass

    def Orphan(self, value: int):
        pass

    def ChatHelp(self):
        pass

    def HandleCommandX(self):
        pass

    def Used(self):
        pass

    def Loaded(self):
        self.Used()
'''


@pytest.fixture
def registries():
    return HookRegistries.from_entries(
        builtin=[
            {"name": "ChatHelper", "parameters": []},
            {"name": "HandleCommandY", "parameters": []},
            {"name": "Loaded", "parameters": []},
        ],
        plugin=[{"name": "ChatHelpCmd", "parameters": [], "plugin": "HelpText"}],
    )


@pytest.fixture
def session(make_session, registries):
    return make_session(PLUGIN_SOURCE, registries)


def _by_name(findings):
    return {finding.method.display_name: finding for finding in findings}


def test_findings(session):
    findings = _by_name(session.run())

    # Base.OnTick is never called: Plugin.OnTick overrides it, which is not a use
    assert set(findings) == {"Base.OnTick", "Plugin.Orphan", "Plugin.ChatHelp", "Plugin.HandleCommandX"}
    assert findings["Plugin.Orphan"].variant is FindingVariant.PLAIN_UNUSED


def test_hook_suggestions_are_ranked(session):
    finding = _by_name(session.run())["Plugin.ChatHelp"]
    assert finding.variant is FindingVariant.UNUSED_WITH_HOOK_SUGGESTIONS
    ranked = [(c.signature.name, c.signature.origin) for c in finding.suggestions[:2]]
    assert ranked == [("ChatHelper", HookOrigin.BUILTIN), ("ChatHelpCmd", HookOrigin.PLUGIN)]


def test_command_name_never_queries_hooks(session, registries, declaration_of):
    class RecordingMatcher(HookMatcher):
        queried = []

        def similar(self, symbol):
            self.queried.append(symbol.name)
            return super().similar(symbol)

    matcher = RecordingMatcher(registries)
    pipeline = DecisionPipeline(session.pipeline.skip_policy, session.usage_resolver, matcher)

    finding = pipeline.evaluate(declaration_of(session, "Plugin.HandleCommandX"))

    assert finding.variant is FindingVariant.UNUSED_AS_COMMAND
    assert finding.suggestions == ()
    assert RecordingMatcher.queried == []


def test_findings_are_ordered_by_location(session):
    findings = session.run()
    positions = [(f.location.path, f.location.line, f.location.column) for f in findings]
    assert positions == sorted(positions)


def test_idempotent_and_thread_count_independent(session):
    first = session.run()
    assert session.run() == first
    assert session.run(workers=4) == first


def test_cancelled_pass_reports_nothing(session):
    token = CancellationToken()
    token.cancel()
    assert session.run(cancellation=token) == []


def test_failing_declaration_is_isolated(session, capsys):
    class ExplodingResolver:
        def __init__(self, inner):
            self.inner = inner

        def is_used(self, method, cancellation=None):
            if method.name == "Orphan":
                raise RuntimeError("boom")
            return self.inner.is_used(method, cancellation)

    pipeline = DecisionPipeline(
        session.pipeline.skip_policy,
        ExplodingResolver(session.usage_resolver),
        session.hook_matcher,
    )
    findings = _by_name(analyze_declarations(session.declarations, pipeline, workers=2))

    assert "Plugin.Orphan" not in findings
    assert "Plugin.ChatHelp" in findings
    assert "Analysis of 'Orphan'" in capsys.readouterr().err


def test_registered_command_is_not_reported(make_session):
    session = make_session('''
    class Plugin:
        def ChatHelp(self, player, args):
            pass

        def Loaded(self):
            cmd.AddChatCommand("help", self, "ChatHelp")
    ''')
    assert "Plugin.ChatHelp" not in _by_name(session.run())


def test_unused_method_in_multi_file_program(make_session):
    session = make_session({
        'a.py': '''
        class First:
            def Lonely(self, value: int):
                pass
        ''',
        'b.py': '''
        class Second:
            def Lonely(self, value: int):
                pass

            def Loaded(self):
                self.Lonely(1)
        ''',
    })
    findings = _by_name(session.run())
    assert "First.Lonely" in findings
    assert "Second.Lonely" not in findings


def test_declarations_keep_their_own_file_identity(make_session):
    # Same class-name length puts both Foo definitions at the same byte offset
    session = make_session({
        'a.py': '''
        class Alpha:
            def Foo(self):
                pass

            def Go(self):
                self.Foo()
        ''',
        'b.py': '''
        class Gamma:
            def Foo(self):
                pass
        ''',
    })
    identities = [(d.location.path, d.symbol.display_name) for d in session.declarations]
    assert identities == [('a.py', 'Alpha.Foo'), ('a.py', 'Alpha.Go'), ('b.py', 'Gamma.Foo')]

    findings = _by_name(session.run())
    assert "Gamma.Foo" in findings
    assert "Alpha.Foo" not in findings


def test_method_supplied_by_subclass_is_used(make_session):
    session = make_session('''
    class Base:
        def Run(self):
            self.Step()

    class Impl(Base):
        def Step(self):
            pass
    ''')
    assert "Impl.Step" not in _by_name(session.run())
