"""
Course catalog, enrollments and student progress.
"""
