"""
Course and enrollment admin configuration.

Enrollment states are driven by jobs; the admin shows them read-only so a
manual edit cannot bypass the state machine.
"""

from django.contrib import admin

from courses.models import Course, CourseModule, Enrollment, StudentProgress


class CourseModuleInline(admin.TabularInline):
    model = CourseModule
    extra = 0
    fields = ["order_index", "title"]
    ordering = ["order_index"]


@admin.register(Course)
class CourseAdmin(admin.ModelAdmin):
    """Admin configuration for Course."""

    list_display = ["title", "status", "price", "currency", "moodle_course_id", "last_synced_at"]
    list_filter = ["status", "currency"]
    search_fields = ["title", "short_name"]
    readonly_fields = ["created_at", "updated_at", "last_synced_at"]
    inlines = [CourseModuleInline]


class StudentProgressInline(admin.TabularInline):
    model = StudentProgress
    extra = 0
    fields = ["module", "status", "score", "started_at", "completed_at"]
    readonly_fields = fields
    can_delete = False

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Enrollment)
class EnrollmentAdmin(admin.ModelAdmin):
    """
    Admin configuration for Enrollment.

    Read-only: state changes come from payment and sync jobs.
    """

    list_display = [
        "id",
        "user",
        "course",
        "payment_status",
        "enrollment_status",
        "progress_percentage",
        "enrolled_at",
        "completed_at",
    ]
    list_filter = ["payment_status", "enrollment_status", "course"]
    search_fields = ["user__email", "course__title", "payment_reference"]
    raw_id_fields = ["user", "course"]
    date_hierarchy = "created_at"
    inlines = [StudentProgressInline]

    fieldsets = (
        (None, {"fields": ("user", "course", "payment_reference")}),
        ("Status", {"fields": ("payment_status", "enrollment_status", "progress_percentage")}),
        (
            "Timestamps",
            {
                "fields": (
                    "enrolled_at",
                    "completed_at",
                    "last_accessed",
                    "last_synced_at",
                    "created_at",
                    "updated_at",
                ),
                "classes": ("collapse",),
            },
        ),
    )

    def get_readonly_fields(self, request, obj=None):
        return [field.name for field in self.model._meta.fields]

    def has_add_permission(self, request):
        return False
