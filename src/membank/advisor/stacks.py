"""Question and recommendation tables for the stack advisor."""
from .questionnaire import Choice, Question, StackRule

JS_FRONTENDS = ("react", "vue", "svelte")
SERVED_PROJECTS = ("web", "api", "mobile")

QUESTIONS = [
    Question(
        id="project_type",
        prompt="What are you building?",
        choices=(
            Choice("web", "Web application"),
            Choice("api", "Backend API or service"),
            Choice("cli", "Command-line tool"),
            Choice("mobile", "Mobile app"),
        ),
        next={"web": "frontend", "mobile": "mobile_framework"},
        default_next="language",
    ),
    Question(
        id="frontend",
        prompt="How should the UI be built?",
        choices=(
            Choice("react", "React"),
            Choice("vue", "Vue"),
            Choice("svelte", "Svelte"),
            Choice("server", "Server-rendered HTML"),
        ),
        next={"server": "language"},
        default_next="auth",
        help="Pick the framework your team already knows if unsure.",
    ),
    Question(
        id="mobile_framework",
        prompt="Which mobile approach fits the team?",
        choices=(
            Choice("react-native", "React Native"),
            Choice("flutter", "Flutter"),
            Choice("native", "Native (Swift / Kotlin)"),
        ),
        default_next="auth",
    ),
    Question(
        id="language",
        prompt="Which backend language does the team know best?",
        choices=(
            Choice("typescript", "TypeScript / Node.js"),
            Choice("python", "Python"),
            Choice("go", "Go"),
        ),
        default_next="auth",
    ),
    Question(
        id="auth",
        prompt="Do users need to sign in?",
        choices=(
            Choice("none", "No sign-in"),
            Choice("email", "Email and password or magic links"),
            Choice("social", "Social login (Google, GitHub, ...)"),
            Choice("enterprise", "Enterprise SSO (SAML / OIDC)"),
        ),
        default_next="database",
        when={"project_type": SERVED_PROJECTS},
    ),
    Question(
        id="database",
        prompt="What kind of data will you store?",
        choices=(
            Choice("relational", "Relational records (users, orders, ...)"),
            Choice("document", "Flexible JSON documents"),
            Choice("none", "No persistent data"),
        ),
        default_next="hosting",
        when={"project_type": SERVED_PROJECTS},
    ),
    Question(
        id="hosting",
        prompt="Where will it run?",
        choices=(
            Choice("serverless", "Managed / serverless platform"),
            Choice("container", "Containers (Docker)"),
            Choice("vps", "Own server or VPS"),
        ),
        default_next="distribution",
        when={"project_type": SERVED_PROJECTS},
        help="Serverless is the least to operate; a VPS is the cheapest at steady load.",
    ),
    Question(
        id="distribution",
        prompt="How will people install the tool?",
        choices=(
            Choice("registry", "Package registry (PyPI / npm)"),
            Choice("binary", "Standalone binary"),
        ),
        default_next=None,
        when={"project_type": ("cli",)},
    ),
]

# Ordered: the first matching rule per category wins
RULES = [
    # Frontend
    StackRule("frontend", "Next.js", "stacks/frontend/frontend-nextjs.md",
              "React with routing, server rendering and API routes built in.",
              {"frontend": ("react",)}),
    StackRule("frontend", "Nuxt", "stacks/frontend/frontend-nuxt.md",
              "The standard full-stack Vue framework.",
              {"frontend": ("vue",)}),
    StackRule("frontend", "SvelteKit", "stacks/frontend/frontend-sveltekit.md",
              "Svelte's official app framework, small bundles.",
              {"frontend": ("svelte",)}),
    StackRule("frontend", "HTMX", "stacks/frontend/frontend-htmx.md",
              "Interactive pages from server-rendered HTML without a JS build.",
              {"frontend": ("server",)}),

    # Mobile
    StackRule("mobile", "Expo", "stacks/mobile/mobile-expo.md",
              "React Native with managed builds and over-the-air updates.",
              {"mobile_framework": ("react-native",)}),
    StackRule("mobile", "Flutter", "stacks/mobile/mobile-flutter.md",
              "One Dart codebase for iOS and Android.",
              {"mobile_framework": ("flutter",)}),
    StackRule("mobile", "SwiftUI + Jetpack Compose", "stacks/mobile/mobile-native.md",
              "Platform-native UI toolkits.",
              {"mobile_framework": ("native",)}),

    # Backend
    StackRule("backend", "Framework API routes", "stacks/backend/backend-framework-routes.md",
              "The chosen frontend framework already serves the API.",
              {"project_type": ("web",), "frontend": JS_FRONTENDS}),
    StackRule("backend", "FastAPI", "stacks/backend/backend-fastapi.md",
              "Typed Python APIs with automatic OpenAPI docs.",
              {"project_type": SERVED_PROJECTS, "language": ("python",)}),
    StackRule("backend", "Hono", "stacks/backend/backend-hono.md",
              "Small, fast TypeScript server that runs on Node and edge runtimes.",
              {"project_type": SERVED_PROJECTS, "language": ("typescript",)}),
    StackRule("backend", "Go net/http + chi", "stacks/backend/backend-go-chi.md",
              "Standard-library HTTP with a light router.",
              {"project_type": SERVED_PROJECTS, "language": ("go",)}),
    StackRule("backend", "Hono", "stacks/backend/backend-hono.md",
              "A TypeScript API for the mobile app.",
              {"project_type": ("mobile",), "mobile_framework": ("react-native",)}),
    StackRule("cli", "Typer", "stacks/cli/cli-typer.md",
              "Python CLIs from type hints.",
              {"project_type": ("cli",), "language": ("python",)}),
    StackRule("cli", "Commander", "stacks/cli/cli-commander.md",
              "The common choice for Node.js command-line tools.",
              {"project_type": ("cli",), "language": ("typescript",)}),
    StackRule("cli", "Cobra", "stacks/cli/cli-cobra.md",
              "Subcommand-based Go CLIs.",
              {"project_type": ("cli",), "language": ("go",)}),

    # Auth
    StackRule("auth", "Authlib", "stacks/auth/auth-authlib.md",
              "OAuth and OpenID Connect for Python services.",
              {"auth": ("email", "social"), "language": ("python",)}),
    StackRule("auth", "Better Auth", "stacks/auth/auth-better-auth.md",
              "Self-hosted TypeScript auth with email and social providers.",
              {"auth": ("email", "social")}),
    StackRule("auth", "WorkOS", "stacks/auth/auth-workos.md",
              "SAML and OIDC enterprise SSO as a service.",
              {"auth": ("enterprise",)}),

    # Database
    StackRule("database", "PostgreSQL + SQLAlchemy", "stacks/database/database-postgres-sqlalchemy.md",
              "Relational data with Python's standard ORM.",
              {"database": ("relational",), "language": ("python",)}),
    StackRule("database", "PostgreSQL + sqlc", "stacks/database/database-postgres-sqlc.md",
              "Type-safe Go from plain SQL.",
              {"database": ("relational",), "language": ("go",)}),
    StackRule("database", "PostgreSQL + Drizzle", "stacks/database/database-postgres-drizzle.md",
              "Relational data with a typed TypeScript query builder.",
              {"database": ("relational",)}),
    StackRule("database", "MongoDB", "stacks/database/database-mongodb.md",
              "Schemaless JSON documents.",
              {"database": ("document",)}),

    # Hosting
    StackRule("hosting", "Vercel", "stacks/hosting/hosting-vercel.md",
              "Zero-config deploys for web frameworks.",
              {"hosting": ("serverless",), "project_type": ("web",)}),
    StackRule("hosting", "Google Cloud Run", "stacks/hosting/hosting-cloud-run.md",
              "Serverless containers for APIs and backends.",
              {"hosting": ("serverless",)}),
    StackRule("hosting", "Fly.io", "stacks/hosting/hosting-fly.md",
              "Run Docker images close to users.",
              {"hosting": ("container",)}),
    StackRule("hosting", "Docker Compose on a VPS", "stacks/hosting/hosting-vps-compose.md",
              "Full control at a fixed monthly cost.",
              {"hosting": ("vps",)}),

    # Distribution
    StackRule("distribution", "PyPI with uv", "stacks/distribution/distribution-pypi.md",
              "Publish a wheel; users install with pipx or uv tool.",
              {"distribution": ("registry",), "language": ("python",)}),
    StackRule("distribution", "npm", "stacks/distribution/distribution-npm.md",
              "Publish with a bin entry; users run it with npx.",
              {"distribution": ("registry",), "language": ("typescript",)}),
    StackRule("distribution", "GoReleaser", "stacks/distribution/distribution-goreleaser.md",
              "Cross-compiled binaries attached to each release.",
              {"distribution": ("binary", "registry"), "language": ("go",)}),
    StackRule("distribution", "PyInstaller", "stacks/distribution/distribution-pyinstaller.md",
              "Bundle the interpreter into a single executable.",
              {"distribution": ("binary",), "language": ("python",)}),
    StackRule("distribution", "Bun single-file executable", "stacks/distribution/distribution-bun.md",
              "Compile TypeScript to a standalone binary.",
              {"distribution": ("binary",), "language": ("typescript",)}),
]
