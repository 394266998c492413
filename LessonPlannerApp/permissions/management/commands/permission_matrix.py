from django.core.management.base import BaseCommand, CommandError

from LessonPlannerApp.core.access import normalize_roles
from LessonPlannerApp.core.choices import UserRole
from LessonPlannerApp.organizations.models import Tenant
from LessonPlannerApp.permissions.resolver import PermissionResolver


def _cell(check):
    if not check.allowed:
        return "-"
    return "approval" if check.requires_approval else "allowed"


class Command(BaseCommand):
    help = "Print the effective permission matrix (overrides applied) for a tenant."

    def add_arguments(self, parser):
        parser.add_argument("--tenant", type=int, required=True, help="Tenant id")
        parser.add_argument("--roles", nargs="*", help="Limit the columns to these roles")

    def handle(self, *args, **options):
        tenant = Tenant.objects.filter(pk=options["tenant"]).first()
        if tenant is None:
            raise CommandError(f"Tenant {options['tenant']} does not exist")
        roles = normalize_roles(options.get("roles")) or list(UserRole.values)
        unknown = [r for r in roles if r not in UserRole.values]
        if unknown:
            raise CommandError(f"Unknown roles: {', '.join(unknown)}")

        resolver = PermissionResolver(tenant)
        matrix = resolver.matrix(roles)
        width = max(len(name) for name in matrix) + 2
        self.stdout.write(f"Tenant {tenant.pk}: {tenant.name}")
        self.stdout.write("permission".ljust(width) + "".join(r.ljust(20) for r in roles))
        for name, row in matrix.items():
            marker = "*" if resolver.has_override(name) else " "
            self.stdout.write(
                f"{name}{marker}".ljust(width) + "".join(_cell(row[r]).ljust(20) for r in roles)
            )
        self.stdout.write(self.style.SUCCESS("* tenant override in effect"))
