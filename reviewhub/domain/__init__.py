# Domain Layer
# ============
# Pure business logic with no I/O:
# - models:     persisted documents and the widget settings union
# - validation: payload checks that report every failing field
# - reviews:    rating filter, averages, pagination, dashboard stats
# - layouts:    widget configuration + reviews -> renderable structure
# - embed:      script-tag and iframe snippets
