def test_imports():
    """
    @brief
    Verifies that all core Data Alchemist modules are importable.

    @details
    Ensures package structure integrity and confirms that the validator,
    dataloader, export and metrics subpackages resolve without import errors.
    """
    import alchemist
    import alchemist.dataloader
    import alchemist.export
    import alchemist.metrics
    import alchemist.report
    import alchemist.validator

    # --- Assert ---
    # Confirm that modules were successfully imported and resolved
    assert all(
        [
            alchemist,
            alchemist.dataloader,
            alchemist.export,
            alchemist.metrics,
            alchemist.report,
            alchemist.validator,
        ]
    )
    assert alchemist.__version__
